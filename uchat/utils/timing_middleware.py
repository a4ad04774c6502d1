import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from ..core.log_config import logger

class TimingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        
        response = await call_next(request)
        
        elapsed_time = time.perf_counter() - start_time
        logger.info(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_time:.4f} seconds.")
        
        return response
