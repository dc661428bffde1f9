"""Background endpoint health probing."""

from rpc_manager.prober.health_prober import HealthProber

__all__ = ["HealthProber"]
