import json

from asgiref.sync import sync_to_async
from channels.generic.websocket import AsyncWebsocketConsumer

from clinic import access
from clinic.services.broadcast import UPDATES_GROUP

# Close codes: 4401 no session, 4403 profile missing or deactivated.
CLOSE_CODES = {'login': 4401, 'deactivated': 4403}


class UpdatesConsumer(AsyncWebsocketConsumer):
    """Pushes ``broadcast.refresh`` events to signed-in staff."""
    GROUP = UPDATES_GROUP

    async def connect(self):
        user = self.scope.get('user')
        decision = await sync_to_async(access.evaluate)(user, 'dashboard')
        if not decision.allowed:
            await self.close(code=CLOSE_CODES.get(decision.redirect, 4403))
            return
        self.joined = True
        await self.channel_layer.group_add(self.GROUP, self.channel_name)
        await self.accept()
        sections = await sync_to_async(access.allowed_sections)(user)
        await self.send(json.dumps({'type': 'welcome', 'sections': sections}))

    async def disconnect(self, close_code):
        if getattr(self, 'joined', False):
            await self.channel_layer.group_discard(self.GROUP, self.channel_name)

    async def broadcast_refresh(self, event):
        await self.send(json.dumps({
            'type': 'refresh',
            'version': event['version'],
            'ts': event['ts'],
            'keys': event['keys'],
        }))
