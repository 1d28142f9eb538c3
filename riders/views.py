# riders/views.py
from rest_framework import permissions, status
from rest_framework.views import APIView
from rest_framework.response import Response

from accounts.permissionsUsers import IsRider
from orders.models import Order, OrderStatus
from orders.services import ProposalService
from .serializers import RiderOrderSerializer, RiderOrderUpdateSerializer


ACTIVE_FOR_RIDER = {OrderStatus.ASSIGNED, OrderStatus.PICKED_UP, OrderStatus.IN_PROGRESS}


class MyActiveOrdersView(APIView):
    """
    GET /api/riders/orders/
    Orders assigned to me that are still being worked on.
    """
    permission_classes = [permissions.IsAuthenticated, IsRider]

    def get(self, request):
        qs = (Order.objects
              .filter(assigned_rider=request.user, status__in=ACTIVE_FOR_RIDER)
              .select_related('customer')
              .prefetch_related('items')
              .order_by('-assigned_at'))
        return Response(RiderOrderSerializer(qs, many=True).data)


class RiderOrderDetailView(APIView):
    permission_classes = [permissions.IsAuthenticated, IsRider]

    def get(self, request, order_id):
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return Response({'error': 'Order not found', 'code': 'ORDER_NOT_EXISTS'},
                            status=status.HTTP_404_NOT_FOUND)
        if order.assigned_rider_id != request.user.id:
            return Response({'error': 'Not your order.', 'code': 'ORDER_NOT_ASSIGNED'},
                            status=status.HTTP_403_FORBIDDEN)
        return Response(RiderOrderSerializer(order).data)


class RiderOrderUpdateView(APIView):
    """
    PUT /api/riders/orders/<order_id>/update/
    Edit the items of an assigned order. With ``requiresVerification`` (the
    default) the edit becomes a change request the customer has to confirm;
    otherwise it is committed right away.
    """
    permission_classes = [permissions.IsAuthenticated, IsRider]

    def put(self, request, order_id):
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return Response({'error': 'Order not found', 'code': 'ORDER_NOT_EXISTS'},
                            status=status.HTTP_404_NOT_FOUND)
        if order.assigned_rider_id != request.user.id:
            return Response({'error': 'This order is not assigned to you.', 'code': 'ORDER_NOT_ASSIGNED'},
                            status=status.HTTP_403_FORBIDDEN)

        serializer = RiderOrderUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        committed_total = order.total_amount

        try:
            if data['requiresVerification']:
                proposal, notification = ProposalService.submit(
                    order.id, request.user, data['items'], notes=data['notes']
                )
                order.refresh_from_db()
                return Response({
                    'message': 'Changes sent to the customer for confirmation',
                    'order': RiderOrderSerializer(order).data,
                    'total_price': str(proposal.updated_total),
                    'committed_total': str(order.total_amount),
                    'price_change': str(proposal.price_delta),
                    'verification_id': str(proposal.id),
                    'expires_at': proposal.expires_at,
                    'notification_sent': notification is not None,
                }, status=status.HTTP_200_OK)

            order, notification = ProposalService.commit_items(order.id, request.user, data['items'])
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'message': 'Order updated',
            'order': RiderOrderSerializer(order).data,
            'total_price': str(order.total_amount),
            'committed_total': str(order.total_amount),
            'price_change': str(order.total_amount - committed_total),
            'verification_id': None,
            'notification_sent': notification is not None,
        }, status=status.HTTP_200_OK)
