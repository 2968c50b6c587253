from prometheus_fastapi_instrumentator import Instrumentator

from chatadmin import create_app
from chatadmin.core.config import settings
from chatadmin.core.logging import configure_logging

configure_logging(settings.LOG_LEVEL)
app = create_app(settings)
Instrumentator().instrument(app).expose(app, include_in_schema=False)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("chatadmin.main:app", host=settings.HOST, port=settings.PORT)
