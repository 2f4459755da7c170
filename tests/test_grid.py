"""Tests for the grid state store (no GPU needed).

Coverage targets:
  - seed_grid: shape, dtype, density, determinism by seed
  - normalize_grid: accepted inputs and error paths
  - BindGroupPair: slot assignment, disjointness, parity selection
  - GridState.initialize: buffer sizes, seeding of A only, allocation failure
"""

import numpy as np
import pytest
import torch
from unittest.mock import MagicMock

from conftest import requires_wgpu


# ═══════════════════════════════════════════════════════════════════════
#  seed_grid / normalize_grid
# ═══════════════════════════════════════════════════════════════════════

@requires_wgpu
class TestSeedGrid:

    def test_shape_and_dtype(self):
        from gpulife.grid import seed_grid
        g = seed_grid(32, 0.4, seed=1)
        assert g.shape == (32, 32)
        assert g.dtype == torch.uint8
        assert set(g.unique().tolist()) <= {0, 1}

    def test_same_seed_same_grid(self):
        from gpulife.grid import seed_grid
        assert torch.equal(seed_grid(64, 0.4, seed=7), seed_grid(64, 0.4, seed=7))

    def test_different_seed_different_grid(self):
        from gpulife.grid import seed_grid
        assert not torch.equal(seed_grid(64, 0.4, seed=1), seed_grid(64, 0.4, seed=2))

    def test_density_close_to_probability(self):
        from gpulife.grid import seed_grid
        g = seed_grid(256, 0.4, seed=0)
        assert g.float().mean().item() == pytest.approx(0.4, abs=0.02)

    def test_extreme_probabilities(self):
        from gpulife.grid import seed_grid
        assert seed_grid(16, 0.0, seed=0).sum().item() == 0
        assert seed_grid(16, 1.0, seed=0).sum().item() == 256

    def test_bad_arguments(self):
        from gpulife.grid import seed_grid
        with pytest.raises(ValueError):
            seed_grid(0)
        with pytest.raises(ValueError):
            seed_grid(8, 1.2)


@requires_wgpu
class TestNormalizeGrid:

    def test_nested_list(self):
        from gpulife.grid import normalize_grid
        g = normalize_grid([[0, 2], [True, 0]], 2)
        assert g.tolist() == [[0, 1], [1, 0]]
        assert g.dtype == torch.uint8

    def test_float_tensor(self):
        from gpulife.grid import normalize_grid
        g = normalize_grid(torch.tensor([[0.0, 0.5], [1.0, 0.0]]), 2)
        assert g.tolist() == [[0, 1], [1, 0]]

    def test_uint32_array(self):
        from gpulife.grid import normalize_grid
        g = normalize_grid(np.eye(3, dtype=np.uint32) * 7, 3)
        assert g.tolist() == [[1, 0, 0], [0, 1, 0], [0, 0, 1]]

    def test_wrong_rank(self):
        from gpulife.grid import normalize_grid
        with pytest.raises(ValueError, match="2D"):
            normalize_grid(np.zeros(4), 2)

    def test_wrong_shape(self):
        from gpulife.grid import normalize_grid
        with pytest.raises(ValueError, match="4x4"):
            normalize_grid(np.zeros((4, 3)), 4)

    def test_wrong_dtype(self):
        from gpulife.grid import normalize_grid
        with pytest.raises(ValueError, match="dtype"):
            normalize_grid(np.array([["a", "b"], ["c", "d"]]), 2)


# ═══════════════════════════════════════════════════════════════════════
#  BindGroupPair
# ═══════════════════════════════════════════════════════════════════════

def _slots(group):
    return {e["binding"]: e["resource"]["buffer"] for e in group["entries"]}


@requires_wgpu
class TestBindGroupPair:

    def _pair(self, mock_device):
        from gpulife.grid import BindGroupPair
        uniform, a, b = MagicMock(name="U"), MagicMock(name="A"), MagicMock(name="B")
        pair = BindGroupPair(mock_device, "layout", uniform, [a, b])
        return pair, uniform, a, b

    def test_two_groups_built(self, mock_device):
        pair, *_ = self._pair(mock_device)
        assert len(pair) == 2
        assert mock_device.create_bind_group.call_count == 2

    def test_group_a_reads_a_writes_b(self, mock_device):
        pair, uniform, a, b = self._pair(mock_device)
        slots = _slots(pair[0])
        assert slots == {0: uniform, 1: a, 2: b}

    def test_group_b_reads_b_writes_a(self, mock_device):
        pair, uniform, a, b = self._pair(mock_device)
        slots = _slots(pair[1])
        assert slots == {0: uniform, 1: b, 2: a}

    def test_groups_share_layout(self, mock_device):
        pair, *_ = self._pair(mock_device)
        assert pair[0]["layout"] == pair[1]["layout"] == "layout"

    def test_identical_buffers_rejected(self, mock_device):
        from gpulife.grid import BindGroupPair
        buf = MagicMock()
        with pytest.raises(ValueError, match="distinct"):
            BindGroupPair(mock_device, "layout", MagicMock(), [buf, buf])

    def test_buffer_count_enforced(self, mock_device):
        from gpulife.grid import BindGroupPair
        with pytest.raises(ValueError, match="exactly 2"):
            BindGroupPair(mock_device, "layout", MagicMock(), [MagicMock()])

    @pytest.mark.parametrize("step", range(6))
    def test_read_and_write_disjoint(self, mock_device, step):
        pair, *_ = self._pair(mock_device)
        slots = _slots(pair.for_compute(step))
        assert slots[1] is not slots[2]
        assert slots[1] is pair.input_buffer(step)
        assert slots[2] is pair.output_buffer(step)

    @pytest.mark.parametrize("step", range(6))
    def test_render_reads_what_compute_wrote(self, mock_device, step):
        pair, *_ = self._pair(mock_device)
        written = _slots(pair.for_compute(step))[2]
        read_by_render = _slots(pair.for_render(step))[1]
        assert read_by_render is written
        assert read_by_render is not _slots(pair.for_compute(step))[1]

    def test_input_alternates(self, mock_device):
        pair, _, a, b = self._pair(mock_device)
        inputs = [pair.input_buffer(s) for s in range(8)]
        assert inputs == [a, b] * 4
        for prev, cur in zip(inputs, inputs[1:]):
            assert prev is not cur

    def test_next_input_is_previous_output(self, mock_device):
        pair, *_ = self._pair(mock_device)
        for step in range(8):
            assert pair.input_buffer(step + 1) is pair.output_buffer(step)


# ═══════════════════════════════════════════════════════════════════════
#  GridState.initialize (mock device)
# ═══════════════════════════════════════════════════════════════════════

@requires_wgpu
class TestGridStateInitialize:

    def test_storage_buffer_size(self, mock_device):
        from gpulife.grid import GridState
        GridState.initialize(mock_device, 10, seed=0)
        sizes = [c.kwargs["size"] for c in mock_device.create_buffer.call_args_list]
        assert sizes == [10 * 10 * 4, 10 * 10 * 4]

    def test_uniform_holds_dimensions(self, mock_device):
        from gpulife.grid import GridState
        GridState.initialize(mock_device, 12, seed=0)
        data = mock_device.create_buffer_with_data.call_args.kwargs["data"]
        assert data.dtype == np.float32
        assert data.tolist() == [12.0, 12.0]

    def test_only_buffer_a_seeded(self, mock_device):
        from gpulife.grid import GridState
        grid = GridState.initialize(mock_device, 8, seed=0)
        assert mock_device.queue.write_buffer.call_count == 1
        target, offset, data = mock_device.queue.write_buffer.call_args.args
        assert target is grid.buffers[0]
        assert offset == 0
        assert data.dtype == np.uint32
        assert data.shape == (64,)

    def test_initial_grid_uploaded_row_major(self, mock_device):
        from gpulife.grid import GridState
        initial = np.zeros((4, 4), dtype=np.uint8)
        initial[1, 2] = 1   # y = 1, x = 2
        GridState.initialize(mock_device, 4, initial=initial)
        data = mock_device.queue.write_buffer.call_args.args[2]
        assert np.flatnonzero(data).tolist() == [1 * 4 + 2]

    def test_layout_slots(self, mock_device):
        import wgpu
        from gpulife.grid import GridState
        GridState.initialize(mock_device, 8, seed=0)
        entries = mock_device.create_bind_group_layout.call_args.kwargs["entries"]
        types = [e["buffer"]["type"] for e in entries]
        assert types == [wgpu.BufferBindingType.uniform,
                         wgpu.BufferBindingType.read_only_storage,
                         wgpu.BufferBindingType.storage]
        assert entries[2]["visibility"] == wgpu.ShaderStage.COMPUTE

    def test_allocation_failure(self, mock_device):
        import wgpu
        from gpulife.errors import GridAllocationError
        from gpulife.grid import GridState
        mock_device.create_buffer.side_effect = wgpu.GPUError("out of memory")
        with pytest.raises(GridAllocationError, match="64x64"):
            GridState.initialize(mock_device, 64, seed=0)

    def test_cell_count(self, mock_device):
        from gpulife.grid import GridState
        grid = GridState.initialize(mock_device, 9, seed=0)
        assert grid.cell_count == 81

    def test_invalid_size(self, mock_device):
        from gpulife.grid import GridState
        with pytest.raises(ValueError):
            GridState.initialize(mock_device, 0)
