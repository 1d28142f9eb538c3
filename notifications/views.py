# views.py
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.pagination import PageNumberPagination
from django.shortcuts import get_object_or_404

from accounts.permissionsUsers import IsRider
from .models import Notification, RiderNotification
from .serializers import NotificationSerializer, RiderNotificationSerializer


class NotificationPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100


class CustomerMailboxMixin:
    """Customer side of the mailbox; the rider views swap model and owner."""
    permission_classes = [IsAuthenticated]
    model = Notification
    serializer_class = NotificationSerializer
    owner_field = 'user'

    def get_queryset(self, request):
        return self.model.objects.filter(**{self.owner_field: request.user}).active()

    def get_notification(self, request, notification_id):
        # Foreign and expired ids both look like missing ones
        return get_object_or_404(self.get_queryset(request), id=notification_id)


class RiderMailboxMixin(CustomerMailboxMixin):
    permission_classes = [IsAuthenticated, IsRider]
    model = RiderNotification
    serializer_class = RiderNotificationSerializer
    owner_field = 'rider'


class NotificationListView(CustomerMailboxMixin, APIView):
    """
    List active notifications for the authenticated user with pagination.
    Unread only unless ``include_read=true``; ``type`` filters by notification type.
    """
    pagination_class = NotificationPagination

    def get(self, request):
        include_read = request.query_params.get('include_read', 'false').lower() == 'true'
        notification_type = request.query_params.get('type', None)

        notifications = self.get_queryset(request).select_related('related_order')
        if not include_read:
            notifications = notifications.filter(is_read=False)
        if notification_type:
            notifications = notifications.filter(notification_type=notification_type)
        notifications = notifications.order_by('-created_at')

        paginator = self.pagination_class()
        result_page = paginator.paginate_queryset(notifications, request)
        serializer = self.serializer_class(result_page, many=True)
        return paginator.get_paginated_response(serializer.data)


class MarkAsReadView(CustomerMailboxMixin, APIView):
    """
    Mark a specific notification as read
    """

    def post(self, request, notification_id):
        notification = self.get_notification(request, notification_id)
        notification.mark_as_read()

        return Response({
            'status': 'marked as read',
            'read_at': notification.read_at
        }, status=status.HTTP_200_OK)


class UnreadCountView(CustomerMailboxMixin, APIView):
    """
    Get count of unread, unexpired notifications
    """
    count_key = 'unread_count'

    def get(self, request):
        count = self.get_queryset(request).filter(is_read=False).count()
        return Response({self.count_key: count})


class UnreadCountShortView(UnreadCountView):
    count_key = 'count'


class MarkAllAsReadView(CustomerMailboxMixin, APIView):
    """
    Mark all notifications as read for the user
    """

    def post(self, request):
        updated_count = self.get_queryset(request).mark_all_read()
        return Response({
            'status': 'success',
            'message': f'Marked {updated_count} notifications as read',
            'read_count': updated_count
        })


class NotificationDetailView(CustomerMailboxMixin, APIView):
    """
    Retrieve a specific notification and mark as read when viewed
    """

    def get(self, request, notification_id):
        notification = self.get_notification(request, notification_id)
        notification.mark_as_read()

        serializer = self.serializer_class(notification)
        return Response(serializer.data)

    def delete(self, request, notification_id):
        notification = self.get_notification(request, notification_id)
        notification.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


class RiderNotificationListView(RiderMailboxMixin, NotificationListView):
    pass


class RiderMarkAsReadView(RiderMailboxMixin, MarkAsReadView):
    pass


class RiderUnreadCountView(RiderMailboxMixin, UnreadCountView):
    pass


class RiderUnreadCountShortView(RiderMailboxMixin, UnreadCountShortView):
    pass


class RiderMarkAllAsReadView(RiderMailboxMixin, MarkAllAsReadView):
    pass


class RiderNotificationDetailView(RiderMailboxMixin, NotificationDetailView):
    pass
