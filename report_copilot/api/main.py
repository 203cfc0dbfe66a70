"""
FastAPI application entry-point.
"""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from report_copilot.api.deps import error_response
from report_copilot.api.routers import catalog, queries, reports
from report_copilot.copilot.components import issues_from_errors
from report_copilot.core.logging import get_logger
from report_copilot.db.connection import dispose_engine

logger = get_logger(__name__)

app = FastAPI(
    title="Report Copilot",
    version="0.1.0",
    description="Natural-language requests to validated, read-only analytics reports",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reports.router, tags=["Reports"])
app.include_router(queries.router, tags=["Queries"])
app.include_router(catalog.router, tags=["Catalog"])


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = issues_from_errors(exc.errors(), skip_prefix=("body",))
    logger.warning("Rejected request to %s: %s", request.url.path, [i.to_dict() for i in issues])
    return error_response(400, "Invalid request body", details=issues)


@app.on_event("shutdown")
def release_db_pool():
    dispose_engine()


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    from report_copilot.core.config import get_settings

    uvicorn.run("report_copilot.api.main:app", host="0.0.0.0", port=get_settings().api_port)
