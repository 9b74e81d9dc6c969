"""Admin partition federation and catalog convergence checks for Consul on Kubernetes."""

__version__ = "0.1.0"
