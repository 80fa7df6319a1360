"""Configuration loading: inventory file and convergence settings."""
from .settings import ConvergenceSettings
from .inventory import ConsoleInventory

__all__ = ["ConvergenceSettings", "ConsoleInventory"]
