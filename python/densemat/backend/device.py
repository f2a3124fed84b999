import logging
import os
from typing import Any, Callable

from . import ndarray_backend_numpy

logger = logging.getLogger(__name__)

# Environment variable naming the device used when none is passed explicitly.
DEVICE_ENV_VAR = "DENSEMAT_DEVICE"


class Device:
    def __init__(self, name: str, module: Any) -> None:
        self.name = name
        self.module = module

    def __repr__(self) -> str:
        return f"{self.name}()"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Device) and self.name == other.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __getattr__(self, name: str) -> Any:
        return getattr(self.module, name)


def cpu_numpy() -> Device:
    return Device("cpu_numpy", ndarray_backend_numpy)


_DEVICES: dict[str, Callable[[], Device]] = {
    "cpu_numpy": cpu_numpy,
}


def available_devices() -> list[str]:
    return sorted(_DEVICES)


def get_device(name: str) -> Device:
    """
    Return the device registered under ``name``.
    Raises RuntimeError for unknown names.
    """
    try:
        factory = _DEVICES[name]
    except KeyError:
        raise RuntimeError(
            f"Unknown device {name!r}. "
            f"Available devices: {', '.join(available_devices())}."
        ) from None
    return factory()


def default_device() -> Device:
    name = os.environ.get(DEVICE_ENV_VAR, "").strip() or "cpu_numpy"
    logger.debug("Resolved default device %s", name)
    return get_device(name)
