# orders/views.py
from django.shortcuts import get_object_or_404
from django.utils import timezone
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework import generics
from rest_framework.permissions import IsAuthenticated

from accounts.permissionsUsers import IsAdmin
from .models import Order, OrderChangeProposal, ProposalStatus, ProposalSource
from .services import ProposalService, ProposalNotFound, ProposalExpired
from .serializers import (
    OrderSerializer, ProposalSerializer, DecisionSerializer, AdjustOrderSerializer,
)


class OrderListView(generics.ListAPIView):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]

    def get_queryset(self):
        queryset = Order.objects.filter(customer=self.request.user).prefetch_related('items')
        status_filter = self.request.query_params.get('status')
        if status_filter:
            queryset = queryset.filter(status=status_filter)
        return queryset


class OrderDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        order = get_object_or_404(Order, pk=pk, customer=request.user)
        return Response(OrderSerializer(order).data)


class PendingVerificationListView(APIView):
    """
    GET /api/orders/verifications/
    Pending, unexpired change requests awaiting the current customer.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        proposals = (OrderChangeProposal.objects
                     .filter(order__customer=request.user,
                             status=ProposalStatus.PENDING,
                             expires_at__gt=timezone.now())
                     .select_related('order', 'rider')
                     .order_by('created_at'))
        serializer = ProposalSerializer(proposals, many=True)
        return Response({'count': len(serializer.data), 'results': serializer.data})


class VerificationDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, proposal_id):
        proposal = get_object_or_404(
            OrderChangeProposal.objects.select_related('order', 'rider'),
            id=proposal_id,
            order__customer=request.user
        )
        return Response(ProposalSerializer(proposal).data)


class RespondToVerificationView(APIView):
    """
    POST /api/orders/verifications/<id>/respond/
    Approve or reject a change request. Answering a request that was already
    decided is not an error; the response says so and nothing changes.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request, proposal_id):
        serializer = DecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        approved = serializer.validated_data['approved']
        reason = serializer.validated_data.get('reason') or ''

        try:
            outcome = ProposalService.decide(proposal_id, request.user, approved, reason)
        except ProposalNotFound as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except ProposalExpired as e:
            return Response({
                'success': False,
                'error': str(e),
                'status': e.proposal.status,
                'verification_id': str(e.proposal.id),
            }, status=status.HTTP_409_CONFLICT)

        proposal = outcome.proposal
        if outcome.already_processed:
            message = f"This change request was already {proposal.status}"
        elif approved:
            message = "Changes approved and applied to your order"
        else:
            message = "Changes rejected; your order is unchanged"

        return Response({
            'success': True,
            'already_processed': outcome.already_processed,
            'message': message,
            'status': proposal.status,
            'verification_id': str(proposal.id),
            'order': OrderSerializer(proposal.order).data,
            'rider_notified': outcome.rider_notification is not None,
        }, status=status.HTTP_200_OK)


class AdjustOrderView(APIView):
    """
    PUT /api/orders/<pk>/adjust/
    Support-team correction; goes through the same customer confirmation.
    """
    permission_classes = [IsAuthenticated, IsAdmin]

    def put(self, request, pk):
        order = get_object_or_404(Order, pk=pk)
        serializer = AdjustOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            proposal, notification = ProposalService.submit(
                order.id,
                None,
                serializer.validated_data['items'],
                notes=serializer.validated_data['notes'],
                source=ProposalSource.ADMIN,
            )
        except ValueError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({
            'message': 'Correction sent to the customer for confirmation',
            'verification_id': str(proposal.id),
            'price_change': str(proposal.price_delta),
            'expires_at': proposal.expires_at,
            'notification_sent': notification is not None,
        }, status=status.HTTP_201_CREATED)
