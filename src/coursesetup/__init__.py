"""Provisioning tool for course Linux and WSL machines."""

__version__ = "0.1.0"
