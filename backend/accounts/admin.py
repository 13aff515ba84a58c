from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("email", "display_name", "is_staff", "stripe_connect_id", "date_joined")
    search_fields = ("email", "display_name", "first_name", "last_name")
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Marketplace", {"fields": ("display_name", "phone", "stripe_customer_id", "stripe_connect_id")}),
    )
