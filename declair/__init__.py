"""declair — add and remove Nix packages from your configuration."""

__version__ = "0.1.0"
