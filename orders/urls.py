# orders/urls.py
from django.urls import path
from .views import (
    OrderListView,
    OrderDetailView,
    PendingVerificationListView,
    VerificationDetailView,
    RespondToVerificationView,
    AdjustOrderView,
)

urlpatterns = [
    path('', OrderListView.as_view(), name='order-list'),
    path('<int:pk>/', OrderDetailView.as_view(), name='order-detail'),
    path('<int:pk>/adjust/', AdjustOrderView.as_view(), name='adjust-order'),

    # Customer confirmation of change requests
    path('verifications/', PendingVerificationListView.as_view(), name='verification-list'),
    path('verifications/<uuid:proposal_id>/', VerificationDetailView.as_view(), name='verification-detail'),
    path('verifications/<uuid:proposal_id>/respond/', RespondToVerificationView.as_view(), name='verification-respond'),
]
