from django.contrib import admin

from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ("email", "role", "status", "payout_account_id", "is_active", "created_at")
    list_filter = ("role", "status", "is_active")
    search_fields = ("email", "first_name", "last_name", "payout_account_id")
    exclude = ("password",)
