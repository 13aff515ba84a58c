from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Platform user. Anyone can rent a space and anyone can list one."""

    display_name = models.CharField(max_length=120, blank=True)
    phone = models.CharField(max_length=30, blank=True)
    stripe_customer_id = models.CharField(max_length=255, blank=True)
    stripe_connect_id = models.CharField(max_length=255, blank=True)

    def __str__(self):
        return self.display_name or self.email or self.username

    @property
    def can_receive_payouts(self) -> bool:
        return bool(self.stripe_connect_id)
