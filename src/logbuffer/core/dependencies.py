from starlette.requests import Request

from logbuffer.core.logging.logger import Logger
from logbuffer.core.logging.middleware import LOGGER_KEY
from logbuffer.exceptions import LoggerNotConfiguredError


def get_request_logger(request: Request) -> Logger:
    # Returns the request's buffered Logger dependency
    request_logger = request.scope.get(LOGGER_KEY)
    if request_logger is None:
        raise LoggerNotConfiguredError()
    return request_logger
