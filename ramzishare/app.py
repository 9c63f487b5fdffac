from contextlib import asynccontextmanager
import json
import logging
from typing import Optional

from fastapi import FastAPI, File, Form, Request, UploadFile, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException

from .access import AccessCodeRegistry
from .config import Settings
from .errors import AuthError, NotFoundError, ShareError, ValidationError
from .middleware import UploadGuard, UploadStalled, format_size
from .models import StoredFile, UploadResult, VerifyRequest, Visibility
from .relay import Relay, WebSocketConnection
from .storage import ContentStore

log = logging.getLogger(__name__)

RESERVED_PREFIXES = ('/api', '/upload', '/public', '/store', '/ws')


def file_url(name: str, visibility: Visibility) -> str:
    return f'/public/{name}' if visibility == Visibility.public else f'/store/{name}'


class ClientBundle(StaticFiles):
    """Pre-built single-page client. Paths that are not assets fall back to
    index.html so client-side routes load; API prefixes stay JSON 404s."""

    async def get_response(self, path: str, scope):
        if ('/' + path).startswith(RESERVED_PREFIXES):
            return JSONResponse({'error': 'Not found'}, status_code=404)
        try:
            return await super().get_response(path, scope)
        except HTTPException as exc:
            if exc.status_code != 404:
                raise
            return await super().get_response('index.html', scope)


async def read_verify_request(request: Request) -> VerifyRequest:
    # the browser client posts JSON; plain HTML forms post urlencoded
    content_type = request.headers.get('content-type', '')
    try:
        if content_type.startswith(('application/x-www-form-urlencoded', 'multipart/form-data')):
            data = dict(await request.form())
        else:
            body = await request.body()
            data = json.loads(body) if body else {}
    except ValueError:
        raise ValidationError('Filename and password required') from None
    if not isinstance(data, dict):
        raise ValidationError('Filename and password required')
    filename, password = data.get('filename'), data.get('password')
    return VerifyRequest(filename=filename if isinstance(filename, str) else None,
                         password=password if isinstance(password, str) else None)


def create_app(settings: Optional[Settings] = None, store: Optional[ContentStore] = None,
               registry: Optional[AccessCodeRegistry] = None, relay: Optional[Relay] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    store = store or ContentStore(settings.storage_dir)
    registry = registry or AccessCodeRegistry()
    relay = relay or Relay()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info('[SERVER] files stored in %s, public files in %s', store.root, store.public_dir)
        yield
        log.info('[SERVER] shutting down, %d connection(s) open', len(relay.connections))

    app = FastAPI(title='RamziShare', lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.registry = registry
    app.state.relay = relay

    # LAN devices reach the server by IP, so any origin is allowed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_methods=['*'],
        allow_headers=['*'],
    )

    @app.exception_handler(ShareError)
    async def share_error_handler(request: Request, exc: ShareError):
        return JSONResponse(exc.to_dict(), status_code=exc.status_code)

    @app.exception_handler(UploadStalled)
    async def upload_stalled_handler(request: Request, exc: UploadStalled):
        return JSONResponse({'error': exc.detail}, status_code=exc.status_code)

    app.add_middleware(UploadGuard, max_bytes=settings.max_upload_bytes,
                       idle_timeout=settings.transport_timeout_seconds)

    # --- files ----------------------------------------------------------

    @app.post('/upload')
    async def upload(file: Optional[UploadFile] = File(None),
                     public: Optional[str] = Form(None),
                     password: Optional[str] = Form(None)):
        if file is None or not file.filename:
            raise ValidationError('No file uploaded')
        visibility = Visibility.from_flag(public == 'true')
        name, size = await store.store(file.filename, file, visibility)

        def reject(message):
            store.discard(store.path_for(name, visibility))
            log.info('[SERVER] upload of %s rejected: %s', name, message)
            raise ValidationError(message)

        if size > settings.max_upload_bytes:
            reject(f'File size ({format_size(size)}, {size} bytes) exceeds the '
                   f'{format_size(settings.max_upload_bytes)} limit')
        if visibility == Visibility.private:
            code = (password or '').strip()
            if not code:
                reject('Access code is required for private files')
            if len(code) < settings.min_access_code_length:
                reject(f'Access code must be at least {settings.min_access_code_length} characters long')
            registry.set_code(name, code)

        return UploadResult(filename=name, size=size, url=file_url(name, visibility),
                            isPublic=visibility == Visibility.public,
                            hasPassword=visibility == Visibility.private).wire()

    @app.get('/api/files')
    async def list_files():
        files = []
        for entry in store.list(Visibility.private):
            files.append(StoredFile(name=entry.name, size=entry.size, modified=entry.modified,
                                    url=file_url(entry.name, Visibility.private),
                                    isPublic=False, hasPassword=entry.name in registry))
        for entry in store.list(Visibility.public):
            files.append(StoredFile(name=entry.name, size=entry.size, modified=entry.modified,
                                    url=file_url(entry.name, Visibility.public),
                                    isPublic=True, hasPassword=False))
        files.sort(key=lambda f: f.modified, reverse=True)
        return {'files': [f.wire() for f in files]}

    @app.delete('/api/files/{filename}')
    async def delete_file(filename: str, public: Optional[str] = None):
        visibility = Visibility.from_flag(public == 'true')
        if not store.remove(filename, visibility):
            raise NotFoundError('File not found')
        registry.clear(filename)
        log.info('[SERVER] deleted %s (%s)', filename, visibility.value)
        return {'success': True, 'message': 'File deleted successfully'}

    @app.post('/api/verify-password')
    async def verify_password(request: Request):
        payload = await read_verify_request(request)
        if not payload.filename or not payload.password:
            raise ValidationError('Filename and password required')
        if payload.filename not in registry:
            raise NotFoundError('File not found or no password set')
        if not registry.verify(payload.filename, payload.password):
            raise AuthError('Invalid password', requires_password=False)
        return {'success': True, 'message': 'Password verified'}

    @app.get('/store/{filename}')
    async def download_private(filename: str, password: Optional[str] = None):
        path = store.read(filename, Visibility.private)
        if path is None:
            raise NotFoundError('File not found')
        if filename not in registry:
            raise AuthError('No access code is set for this file')
        if not password:
            raise AuthError('Access code required')
        if not registry.verify(filename, password):
            raise AuthError('Invalid access code', requires_password=False)
        return FileResponse(path)

    @app.get('/public/{filename}')
    async def download_public(filename: str):
        path = store.read(filename, Visibility.public)
        if path is None:
            raise NotFoundError('File not found')
        return FileResponse(path)

    @app.get('/api/health')
    async def health():
        return {'status': 'ok', 'users': len(relay.participants)}

    # --- realtime -------------------------------------------------------

    @app.websocket('/ws')
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()
        conn = WebSocketConnection(websocket)
        relay.connect(conn)
        try:
            while True:
                message = await websocket.receive()
                if message['type'] == 'websocket.disconnect':
                    break
                text = message.get('text')
                if text is None:
                    log.warning('[SERVER] ignored binary frame from %s', conn.id)
                    continue
                await relay.dispatch(conn, text)
        finally:
            await relay.disconnect(conn)

    # --- client pages ---------------------------------------------------

    dist = settings.client_dist_dir
    if settings.is_production and dist.is_dir():
        # mounted last so every API route above takes precedence
        app.mount('/', ClientBundle(directory=dist, html=True), name='client')
    else:
        pages = settings.fallback_pages_dir

        def page(name):
            path = pages / name
            if path.is_file():
                return FileResponse(path)
            return HTMLResponse(f'<h3>RamziShare backend running. {name} not found; '
                                'connect via WebSocket at /ws</h3>')

        @app.get('/')
        async def index():
            return page('login.html')

        @app.get('/dashboard.html')
        async def dashboard():
            return page('dashboard.html')

    return app
