# accounts/views.py
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email as django_validate_email
from django.utils import timezone
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from .models import User
from .utils import issue_session_token


class LoginAPIView(APIView):
    """
    POST /api/accounts/login/
    Exchange email + password for a session token. Issuing a new token
    invalidates the previous one.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def post(self, request):
        email = request.data.get('email')
        password = request.data.get('password')

        if not email or not password:
            return Response({'error': 'Email and password are required'}, status=400)

        try:
            django_validate_email(email)
        except DjangoValidationError:
            return Response({'error': 'Invalid email format'}, status=400)

        try:
            user = User.objects.get(email=email)
        except User.DoesNotExist:
            return Response({'error': 'Invalid credentials'}, status=400)

        if not user.check_password(password):
            return Response({'error': 'Invalid credentials'}, status=400)

        if not user.is_active:
            return Response({'error': 'Account is disabled'}, status=403)

        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])
        token = issue_session_token(user)

        return Response({
            'message': 'Logged in successfully',
            'token': token,
            'user': {
                'id': user.id,
                'email': user.email,
                'role': user.role,
                'name': user.display_name,
            }
        }, status=200)


class LogoutAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request):
        request.user.current_token_user = None
        request.user.save(update_fields=['current_token_user'])
        return Response({'message': 'Logged out'}, status=status.HTTP_200_OK)


class MeAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = request.user
        return Response({
            'id': user.id,
            'email': user.email,
            'role': user.role,
            'name': user.display_name,
            'phone_number': user.phone_number,
        })
