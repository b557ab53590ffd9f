"""Panel instances, their registry and lifecycle management."""

from .controller import Controller, PanelController
from .instance import SurfaceInstance
from .lifecycle import PanelLifecycleManager
from .registry import InstanceRegistry

__all__ = [
    "Controller",
    "PanelController",
    "SurfaceInstance",
    "PanelLifecycleManager",
    "InstanceRegistry",
]
