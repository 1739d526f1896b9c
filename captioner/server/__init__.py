"""HTTP render API: FastAPI app, pydantic models and the render job store."""
