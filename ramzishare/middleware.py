"""ASGI guard for the upload endpoint.

Oversized uploads are refused from the ``Content-Length`` header before any
of the body is read, and an upload whose body stops arriving for longer than
the idle timeout is aborted while it is still being parsed. Nothing has been
written to the content store at that point, only the framework's spooled
temporary file, which is dropped with the request.
"""
import asyncio
import logging

from fastapi import HTTPException
from fastapi.responses import JSONResponse

log = logging.getLogger(__name__)

# room for multipart boundaries and form fields on top of the file itself
MULTIPART_OVERHEAD = 64 * 1024


def format_size(size: int) -> str:
    return f'{size / (1024 * 1024):.2f}MB'


class UploadStalled(HTTPException):
    def __init__(self, timeout):
        super().__init__(status_code=400, detail=f'Upload timed out after {timeout:g}s without data')


class UploadGuard:
    def __init__(self, app, max_bytes: int, idle_timeout: float, path: str = '/upload'):
        self.app = app
        self.max_bytes = max_bytes
        self.idle_timeout = idle_timeout
        self.path = path

    async def __call__(self, scope, receive, send):
        if scope['type'] != 'http' or scope['method'] != 'POST' or scope['path'] != self.path:
            await self.app(scope, receive, send)
            return

        length = dict(scope['headers']).get(b'content-length', b'').decode('latin-1')
        if length.isdigit() and int(length) > self.max_bytes + MULTIPART_OVERHEAD:
            log.warning('[SERVER] rejected upload of %s bytes before reading body', length)
            response = JSONResponse(
                {'error': f'File size ({format_size(int(length))}) exceeds the '
                          f'{format_size(self.max_bytes)} limit'},
                status_code=400)
            await response(scope, receive, send)
            return

        async def timed_receive():
            try:
                return await asyncio.wait_for(receive(), self.idle_timeout)
            except asyncio.TimeoutError:
                log.warning('[SERVER] upload idle for %ss, aborting', self.idle_timeout)
                raise UploadStalled(self.idle_timeout) from None

        await self.app(scope, timed_receive, send)
