"""Exception hierarchy for gpulife.

Setup failures are raised once to whoever asked for initialization and are
never retried.  A failure while a tick is being encoded or submitted is a
:class:`DeviceLostError`; the scheduler stops when it sees one.
"""


class LifeError(RuntimeError):
    """Base class for every gpulife failure."""


class LifeSetupError(LifeError):
    """The pipeline could not be brought up."""


class UnsupportedEnvironmentError(LifeSetupError):
    """No WebGPU backend is available on this host."""


class DeviceAcquisitionError(LifeSetupError):
    """The adapter or device request came back empty."""


class SurfaceConfigurationError(LifeSetupError):
    """The presentable surface could not be bound to the device."""


class GridAllocationError(LifeSetupError):
    """GPU memory for the grid buffers or bind groups could not be allocated."""


class DeviceLostError(LifeError):
    """The device became unusable while the simulation was running."""
