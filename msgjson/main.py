"""msg-to-json-api - Outlook .msg to JSON conversion service powered by FastAPI."""

import uvicorn
from asgi_correlation_id import CorrelationIdMiddleware
from fastapi import FastAPI

from msgjson.api.convert import router as convert_router
from msgjson.api.health import router as health_router
from msgjson.core.errors import register_error_handlers
from msgjson.core.lifespan import create_lifespan
from msgjson.core.logger import LogIcon, logger
from msgjson.core.settings import settings as st
from msgjson.events.process_pool import ConverterPoolEvent
from msgjson.middlewares.base import MiddlewareHandler
from msgjson.middlewares.limits import PayloadLimitMiddleware

# Lifespan events
lifespan = create_lifespan()
lifespan.register(ConverterPoolEvent)

app = FastAPI(
    title=st.API_NAME,
    description=st.API_DESCRIPTION,
    version=st.API_VERSION,
    lifespan=lifespan,
    redirect_slashes=False,
)

register_error_handlers(app)

# Routers, before middlewares so upload endpoints are known
app.include_router(health_router)
app.include_router(convert_router)

# Middlewares; the last one added runs first
middlewares = MiddlewareHandler(app)
middlewares.register(PayloadLimitMiddleware)
app.add_middleware(CorrelationIdMiddleware)


def main() -> None:
    logger.info(f"Starting {st.API_NAME}", icon=LogIcon.START, host=st.API_HOST, port=st.API_PORT)
    uvicorn.run(app, host=st.API_HOST, port=st.API_PORT, access_log=st.DEBUG)


if __name__ == "__main__":
    main()
