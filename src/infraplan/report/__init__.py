"""Report generation module - machine-readable output surfaces for infraplan runs."""

from .artifact import generate_artifacts

__all__ = ["generate_artifacts"]
