# consumers.py
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .utils import group_name_for


class NotificationConsumer(AsyncJsonWebsocketConsumer):
    """Pushes new mailbox rows to the connected user.

    Riders join ``rider_notifications_<id>``, everyone else ``notifications_<id>``.
    """

    async def connect(self):
        user = self.scope.get('user')
        if user is None or not user.is_authenticated:
            await self.close(code=4401)
            return

        self.group_name = group_name_for(user, rider=user.is_rider)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()

    async def disconnect(self, code):
        group_name = getattr(self, 'group_name', None)
        if group_name:
            await self.channel_layer.group_discard(group_name, self.channel_name)

    async def send_notification(self, event):
        await self.send_json({'type': 'notification', 'notification': event['notification']})
