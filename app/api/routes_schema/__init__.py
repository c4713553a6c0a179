from fastapi import APIRouter
from app.api.routes_schema.schema_routes import router as schema_routes

router = APIRouter(prefix="/schema", tags=["Schema"])
router.include_router(schema_routes)
