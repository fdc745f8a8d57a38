from django.contrib import admin
from .models import Order, CheckoutAttempt


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Staff fulfil orders here: status is the only editable field.
    """
    list_display = ('id', 'user', 'status', 'total_amount', 'payment_ref', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('id', 'payment_ref', 'user__email')

    readonly_fields = (
        'id',
        'user',
        'items',
        'payment_ref',
        'total_amount',
        'address',
        'created_at',
        'updated_at',
    )

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(CheckoutAttempt)
class CheckoutAttemptAdmin(admin.ModelAdmin):
    list_display = ('payment_ref', 'email', 'status', 'account_created', 'order', 'updated_at')
    list_filter = ('status', 'account_created')
    search_fields = ('payment_ref', 'email')
    readonly_fields = [f.name for f in CheckoutAttempt._meta.fields]

    def has_add_permission(self, request):
        return False
