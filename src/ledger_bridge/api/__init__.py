"""HTTP API: FastAPI app factory, request models and routers."""
