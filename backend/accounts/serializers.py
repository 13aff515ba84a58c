import re

from django.contrib.auth import get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

User = get_user_model()

PHONE_RE = re.compile(r"^\+?[0-9 ()-]{7,20}$")


def _fallback_display_name(user) -> str:
    return f"{user.first_name} {user.last_name}".strip() or user.email


def _clean_phone(value: str) -> str:
    value = value.strip()
    if value and not PHONE_RE.match(value):
        raise serializers.ValidationError("Enter a phone number the other party can call.")
    return value


class UserSerializer(serializers.ModelSerializer):
    """The signed-in user's own profile."""

    can_receive_payouts = serializers.BooleanField(read_only=True)
    listed_spaces = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "first_name",
            "last_name",
            "display_name",
            "phone",
            "is_staff",
            "can_receive_payouts",
            "listed_spaces",
        ]
        read_only_fields = ["id", "email", "first_name", "last_name", "display_name", "phone", "is_staff"]

    def get_listed_spaces(self, obj) -> int:
        return obj.spaces.count()


class PublicProfileSerializer(serializers.ModelSerializer):
    """What strangers see of a listing owner or reviewer."""

    class Meta:
        model = User
        fields = ["id", "display_name"]


class BookingPartySerializer(serializers.ModelSerializer):
    """Contact details shared between the renter and owner of a booking."""

    class Meta:
        model = User
        fields = ["id", "display_name", "email", "phone"]


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=8)

    class Meta:
        model = User
        fields = ["email", "password", "first_name", "last_name", "display_name", "phone"]
        extra_kwargs = {"email": {"required": True, "allow_blank": False}}

    def validate_email(self, value: str) -> str:
        email = value.lower()
        if User.objects.filter(email__iexact=email).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return email

    def validate_phone(self, value: str) -> str:
        return _clean_phone(value)

    def create(self, validated_data):
        email = validated_data.pop("email")
        user = User(username=email, email=email, **{k: v for k, v in validated_data.items() if k != "password"})
        user.set_password(validated_data["password"])
        if not user.display_name:
            user.display_name = _fallback_display_name(user)
        user.save()
        return user


class EmailLoginSerializer(TokenObtainPairSerializer):
    """
    Exchange email and password for a JWT pair.

    Accounts are looked up by email, whatever their username, and the
    response carries the profile so clients need no second request.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        del self.fields[self.username_field]
        self.fields["email"] = serializers.EmailField(write_only=True)

    def validate(self, attrs):
        email = attrs.pop("email").lower()
        account = User.objects.filter(email__iexact=email).only(self.username_field).first()
        attrs[self.username_field] = getattr(account, self.username_field) if account else email
        data = super().validate(attrs)
        data["user"] = UserSerializer(self.user).data
        return data


class ProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["email", "first_name", "last_name", "display_name", "phone"]

    def validate_email(self, value: str) -> str:
        email = value.lower()
        if User.objects.filter(email__iexact=email).exclude(pk=self.instance.pk).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return email

    def validate_phone(self, value: str) -> str:
        return _clean_phone(value)

    def update(self, instance, validated_data):
        for field, value in validated_data.items():
            setattr(instance, field, value)
        # Email doubles as the login name.
        if "email" in validated_data:
            instance.username = instance.email
        if not instance.display_name:
            instance.display_name = _fallback_display_name(instance)
        instance.save()
        return instance


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, min_length=8)

    def validate_current_password(self, value):
        if not self.context["request"].user.check_password(value):
            raise serializers.ValidationError("Current password is incorrect.")
        return value

    def validate(self, attrs):
        if attrs["current_password"] == attrs["new_password"]:
            raise serializers.ValidationError({"new_password": "Choose a password you have not used here."})
        return attrs

    def save(self, **kwargs):
        user = self.context["request"].user
        user.set_password(self.validated_data["new_password"])
        user.save(update_fields=["password"])
        return user


class PayoutAccountSerializer(serializers.Serializer):
    connected = serializers.BooleanField()
    account_id = serializers.CharField(allow_null=True, required=False)
    details_submitted = serializers.BooleanField(required=False)
    payouts_enabled = serializers.BooleanField(required=False)

    @staticmethod
    def from_account(user, stripe_account=None) -> dict:
        if not user.stripe_connect_id:
            return {"connected": False, "account_id": None}
        return {
            "connected": True,
            "account_id": user.stripe_connect_id,
            "details_submitted": bool(getattr(stripe_account, "details_submitted", False)),
            "payouts_enabled": bool(getattr(stripe_account, "payouts_enabled", False)),
        }


class OnboardingLinkSerializer(serializers.Serializer):
    url = serializers.URLField()
    expires_at = serializers.DateTimeField()
