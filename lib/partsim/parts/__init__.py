from .clock import Clock
from .register import Register

__all__ = ["Clock", "Register"]
