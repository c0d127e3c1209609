"""Run the FokusHub360 API with uvicorn (auto-reload in debug mode)."""
import uvicorn

from hub.config import settings

if __name__ == "__main__":
    print(f"Starting {settings.app_name} v{settings.version} ({settings.environment.value})")
    print(f"Database: {settings.db.url.split('@')[-1]}")
    print(f"LLM model: {settings.llm.model}")
    print(f"Scheduler: {'Enabled' if settings.scheduler.enabled else 'Disabled'}")
    print("-" * 50)

    uvicorn.run(
        "hub.api:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        reload_dirs=["hub", "ai", "config"] if settings.debug else None,
        log_level=settings.logging.level.lower(),
    )
