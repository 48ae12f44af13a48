"""
psu-deploy - PRTG power-supply sensor provisioning
Discovers PSUs over SNMP and creates one ENTITY-STATE sensor per unit.
"""

__version__ = "1.2.0"


def __getattr__(name: str):
    """Lazy import so `psu_deploy.__version__` does not pull in requests."""
    if name in ("DeploymentDriver", "DeploymentOptions"):
        from psu_deploy.driver import DeploymentDriver, DeploymentOptions

        return locals()[name]

    if name == "PrtgClient":
        from psu_deploy.client import PrtgClient

        return PrtgClient

    if name == "match":
        from psu_deploy.matcher import match

        return match

    raise AttributeError(f"module 'psu_deploy' has no attribute {name!r}")


__all__ = [
    "__version__",
    "DeploymentDriver",
    "DeploymentOptions",
    "PrtgClient",
    "match",
]
