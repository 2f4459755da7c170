"""Shared pytest fixtures and helpers for gpulife tests.

GPU tests need a WebGPU adapter (a software adapter such as lavapipe is
enough).  They are skipped automatically when none can be found.
"""

import pytest

# ---------------------------------------------------------------------------
#  Skip helpers
# ---------------------------------------------------------------------------

def _has_wgpu():
    try:
        import wgpu  # noqa: F401
        return True
    except ImportError:
        return False

def _has_adapter():
    try:
        import wgpu
        import wgpu.backends.wgpu_native  # noqa: F401
        return wgpu.gpu.request_adapter_sync() is not None
    except Exception:
        return False


requires_wgpu = pytest.mark.skipif(not _has_wgpu(), reason="wgpu not installed")
requires_adapter = pytest.mark.skipif(not _has_adapter(), reason="no WebGPU adapter available")


# ---------------------------------------------------------------------------
#  Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def device():
    """One wgpu device for the whole test session."""
    from gpulife.context import request_device
    _, dev = request_device()
    return dev


@pytest.fixture
def make_session(device):
    """Factory for small headless sessions; everything is released afterwards."""
    from gpulife.context import OffscreenSurface
    from gpulife.scheduler import LifeSession

    made = []

    def _make(size, initial=None, *, seed=None, width=64, height=64):
        surface = OffscreenSurface(device, width, height)
        session = LifeSession.create(device, surface, size, initial=initial, seed=seed)
        made.append(session)
        return session

    yield _make

    for session in made:
        session.destroy()
        session.surface.destroy()


@pytest.fixture
def mock_device():
    """A MagicMock standing in for ``wgpu.GPUDevice``.

    ``create_bind_group`` echoes its keyword arguments back so tests can
    inspect which buffer landed in which slot.
    """
    from unittest.mock import MagicMock
    dev = MagicMock(name="device")
    dev.create_bind_group.side_effect = lambda **kw: dict(kw)
    dev.create_buffer.side_effect = lambda **kw: MagicMock(name=kw.get("label", "buffer"))
    return dev
