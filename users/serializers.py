# users/serializers.py
from rest_framework import serializers

from .models import Permission, Role


class CreateUserSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(min_length=8, write_only=True)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default='')
    role = serializers.SlugRelatedField(
        slug_field='name', queryset=Role.objects.all(), required=False, allow_null=True
    )


class RoleAssignmentSerializer(serializers.Serializer):
    role = serializers.SlugRelatedField(slug_field='name', queryset=Role.objects.all())


class PasswordResetSerializer(serializers.Serializer):
    password = serializers.CharField(min_length=8, write_only=True)


class PermissionSerializer(serializers.ModelSerializer):
    class Meta:
        model = Permission
        fields = ['id', 'name', 'description', 'module']


class RoleSerializer(serializers.ModelSerializer):
    permissions = serializers.SlugRelatedField(slug_field='name', many=True, read_only=True)

    class Meta:
        model = Role
        fields = ['id', 'name', 'display_name', 'description', 'is_system', 'permissions']
