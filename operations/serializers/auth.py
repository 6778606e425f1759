from rest_framework import serializers

from operations.authentication import ROLES


class LoginSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=ROLES)
    id = serializers.CharField(max_length=32)
    password = serializers.CharField()

    def validate_id(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('ID is required')
        return v


class ChangePasswordSerializer(serializers.Serializer):
    oldPassword = serializers.CharField()
    newPassword = serializers.CharField(min_length=8)

    def validate(self, attrs):
        if attrs['oldPassword'] == attrs['newPassword']:
            raise serializers.ValidationError('New password must differ from the old one')
        return attrs
