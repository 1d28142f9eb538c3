# rider_urls.py
from django.urls import path
from .views import (
    RiderNotificationListView,
    RiderMarkAsReadView,
    RiderUnreadCountView,
    RiderUnreadCountShortView,
    RiderMarkAllAsReadView,
    RiderNotificationDetailView
)

urlpatterns = [
    path('', RiderNotificationListView.as_view(), name='rider-notification-list'),
    path('<int:notification_id>/', RiderNotificationDetailView.as_view(), name='rider-notification-detail'),
    path('<int:notification_id>/read/', RiderMarkAsReadView.as_view(), name='rider-mark-read'),
    path('count/', RiderUnreadCountView.as_view(), name='rider-notification-count'),
    path('unread-count/', RiderUnreadCountShortView.as_view(), name='rider-unread-count'),
    path('mark-all-read/', RiderMarkAllAsReadView.as_view(), name='rider-mark-all-read'),
]
