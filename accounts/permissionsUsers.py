# permissions.py
from rest_framework.permissions import BasePermission
from .models import Role


class IsCustomer(BasePermission):
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == Role.CUSTOMER


class IsRider(BasePermission):
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == Role.RIDER


class IsAdmin(BasePermission):
    def has_permission(self, request, view):
        user = request.user
        return user.is_authenticated and (user.role == Role.ADMIN or user.is_superuser)
