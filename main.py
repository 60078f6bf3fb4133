"""
OnlineCare Chat Relay - FastAPI application relaying chat turns to a local LLM server.
Featuring buffered and streamed completions, reasoning separation and an offline fallback reply.
"""
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from config import Config
from routes import chat, chat_stream, models_route
from utils.logger import app_logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    settings = Config.relay_settings()
    app_logger.info(f"Relaying to {settings.completions_url} (model: {settings.model})")
    yield
    app_logger.info("Shutting down")

app = FastAPI(title=Config.APP_TITLE, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def format_validation_message(errors: list) -> str:
    """Turn the first pydantic error into a user-friendly message."""
    if not errors:
        return "Invalid request"

    first_error = errors[0]
    error_type = first_error.get('type', '')
    field = first_error.get('loc', [])[-1] if first_error.get('loc') else 'field'

    if error_type == 'string_too_long':
        max_length = first_error.get('ctx', {}).get('max_length', 'unknown')
        current_length = len(first_error.get('input', '') or '')
        return f"Field '{field}' exceeds maximum length of {max_length} characters (current: {current_length})"

    return f"{field}: {first_error.get('msg', 'Validation error')}"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with user-friendly messages"""
    errors = exc.errors()
    app_logger.error(f"Validation error for {request.url}")
    app_logger.error(f"Errors: {errors}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "success": False,
            "error": "Validation failed",
            "details": format_validation_message(errors)
        },
    )


#root endpoint
@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {"message": "OnlineCare Chat Relay is running"}

app.include_router(chat.router, prefix=Config.API_PREFIX, tags=["chat"])
app.include_router(chat_stream.router, prefix=Config.API_PREFIX, tags=["chat"])
app.include_router(models_route.router, prefix=Config.API_PREFIX, tags=["models"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
