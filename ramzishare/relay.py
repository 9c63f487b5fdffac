"""Presence tracking and event fan-out for connected chat clients.

Every frame on the wire is ``{"event": name, "data": payload}``. The relay
never reports its own failures back to a client: lookups that miss and
frames it does not understand are logged and dropped.
"""
import json
import logging
import uuid
from typing import Dict, List, Optional

from pydantic import ValidationError as ModelError

from .models import ChatMessage, FileShared, Participant, PrivateMessage

log = logging.getLogger(__name__)


class Connection:
    """One transport-level connection. Subclasses supply ``send_text``."""

    def __init__(self, conn_id: Optional[str] = None):
        self.id = conn_id or uuid.uuid4().hex

    async def send_text(self, text: str):
        raise NotImplementedError

    async def emit(self, event: str, data):
        await self.send_text(json.dumps({'event': event, 'data': data}))


class WebSocketConnection(Connection):
    def __init__(self, websocket, conn_id: Optional[str] = None):
        super().__init__(conn_id)
        self.websocket = websocket

    async def send_text(self, text: str):
        await self.websocket.send_text(text)


class Relay:
    def __init__(self):
        self.connections: Dict[str, Connection] = {}
        self.participants: Dict[str, Participant] = {}
        self.handlers = {
            'user-join': self.on_announce,
            'announce': self.on_announce,
            'chat-message': self.on_chat_message,
            'private-message': self.on_private_message,
            'typing': self.on_typing,
            'file-shared': self.on_file_shared,
            'request-users-list': self.on_request_users_list,
            'get-users-list': self.on_get_users_list,
        }

    # --- registry -------------------------------------------------------

    def connect(self, conn: Connection):
        self.connections[conn.id] = conn
        log.info('[SERVER] connection opened: %s', conn.id)

    def participant_list(self) -> List[dict]:
        return [p.wire() for p in list(self.participants.values())]

    def find_by_user_id(self, user_id) -> Optional[Participant]:
        # first match wins; duplicate user ids are not disambiguated
        for p in list(self.participants.values()):
            if p.user_id == user_id:
                return p
        return None

    # --- fan-out --------------------------------------------------------

    async def send(self, conn: Connection, event: str, data):
        try:
            await conn.emit(event, data)
        except Exception as e:
            log.warning('[SERVER] send %s to %s failed: %s', event, conn.id, e)

    async def broadcast(self, event: str, data, exclude: Optional[str] = None):
        for conn in list(self.connections.values()):
            if conn.id == exclude:
                continue
            await self.send(conn, event, data)

    # --- inbound --------------------------------------------------------

    async def dispatch(self, conn: Connection, raw: str):
        try:
            frame = json.loads(raw)
        except ValueError:
            log.warning('[SERVER] invalid json from %s', conn.id)
            return
        if not isinstance(frame, dict):
            log.warning('[SERVER] non-object frame from %s', conn.id)
            return
        event = frame.get('event')
        data = frame.get('data')
        if data is None:
            data = {}
        handler = self.handlers.get(event)
        if handler is None:
            log.warning('[SERVER] unknown event %r from %s', event, conn.id)
            return
        if not isinstance(data, dict):
            log.warning('[SERVER] %s payload from %s is not an object', event, conn.id)
            return
        try:
            await handler(conn, data)
        except ModelError as e:
            log.warning('[SERVER] dropped malformed %s from %s: %s', event, conn.id, e)

    async def on_announce(self, conn: Connection, data: dict):
        user = Participant(id=conn.id, name=str(data.get('name') or ''),
                           userId=str(data.get('userId') or ''))
        self.participants[conn.id] = user
        log.info('[SERVER] %s joined as %s (%s)', conn.id, user.name, user.user_id)
        await self.broadcast('user-joined', {'user': user.wire(),
                                             'totalUsers': len(self.participants)})
        await self.send(conn, 'users-list', self.participant_list())
        await self.broadcast('users-list-updated', self.participant_list())

    async def on_chat_message(self, conn: Connection, data: dict):
        user = self.participants.get(conn.id)
        if user is None:
            return
        msg = ChatMessage(id=uuid.uuid4().hex, user=user.name, userId=user.user_id,
                          message=str(data.get('message', '')))
        await self.broadcast('chat-message', msg.wire())

    async def on_private_message(self, conn: Connection, data: dict):
        sender = self.participants.get(conn.id)
        if sender is None:
            return
        recipient = self.find_by_user_id(data.get('toUserId'))
        if recipient is None:
            log.info('[SERVER] private message from %s dropped, no user %r',
                     sender.user_id, data.get('toUserId'))
            return
        target = self.connections.get(recipient.id)
        if target is None:
            return
        msg = PrivateMessage(fromUserId=sender.user_id, fromUserName=sender.name,
                             message=str(data.get('message', '')))
        await self.send(target, 'private-message', msg.wire())

    async def on_typing(self, conn: Connection, data: dict):
        user = self.participants.get(conn.id)
        if user is None:
            return
        await self.broadcast('typing', {'user': user.name, 'isTyping': bool(data.get('isTyping'))},
                             exclude=conn.id)

    async def on_file_shared(self, conn: Connection, data: dict):
        user = self.participants.get(conn.id)
        if user is None:
            return
        note = FileShared(user=user.name, fileName=data.get('fileName'),
                          fileSize=data.get('fileSize'), isPublic=data.get('isPublic'))
        await self.broadcast('file-shared', note.wire())

    async def on_request_users_list(self, conn: Connection, data: dict):
        await self.send(conn, 'users-list', self.participant_list())

    async def on_get_users_list(self, conn: Connection, data: dict):
        await self.broadcast('users-list-updated', self.participant_list())

    async def disconnect(self, conn: Connection):
        self.connections.pop(conn.id, None)
        user = self.participants.pop(conn.id, None)
        if user is not None:
            log.info('[SERVER] %s (%s) left', user.name, user.user_id)
            await self.broadcast('user-left', {'user': user.wire(),
                                               'totalUsers': len(self.participants)})
            await self.broadcast('users-list-updated', self.participant_list())
        log.info('[SERVER] connection closed: %s', conn.id)
