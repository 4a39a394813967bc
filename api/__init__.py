"""HTTP layer: schemas, dependency wiring and routers."""
from .dependencies import Services, build_services, get_caller, get_services
from .routes import router

__all__ = ["Services", "build_services", "get_caller", "get_services", "router"]
