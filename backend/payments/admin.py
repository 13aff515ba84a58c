from django.contrib import admin

from .models import Payment, Payout, PayoutLine


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "content_type", "object_id", "amount", "status", "refund_amount", "created_at")
    list_filter = ("status", "payment_method", "content_type")
    search_fields = ("stripe_payment_intent_id", "user__email")
    readonly_fields = ("stripe_payment_intent_id", "stripe_charge_id", "metadata")


class PayoutLineInline(admin.TabularInline):
    model = PayoutLine
    extra = 0
    fields = ("booking", "amount", "status")
    readonly_fields = fields


@admin.register(Payout)
class PayoutAdmin(admin.ModelAdmin):
    list_display = ("id", "owner", "amount", "status", "period_start", "period_end", "processed_at")
    list_filter = ("status",)
    search_fields = ("owner__email", "stripe_transfer_id")
    inlines = [PayoutLineInline]


@admin.register(PayoutLine)
class PayoutLineAdmin(admin.ModelAdmin):
    list_display = ("booking", "owner", "amount", "status", "payout")
    list_filter = ("status",)
