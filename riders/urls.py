# riders/urls.py
from django.urls import path, include
from .views import MyActiveOrdersView, RiderOrderDetailView, RiderOrderUpdateView


urlpatterns = [
    path('orders/', MyActiveOrdersView.as_view(), name='rider-my-orders'),
    path('orders/<int:order_id>/', RiderOrderDetailView.as_view(), name='rider-order-detail'),
    path('orders/<int:order_id>/update/', RiderOrderUpdateView.as_view(), name='rider-order-update'),
    path('notifications/', include('notifications.rider_urls')),
]
