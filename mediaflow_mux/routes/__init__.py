from mediaflow_mux.routes.mux import mux_router, get_orchestrator

__all__ = ["mux_router", "get_orchestrator"]
