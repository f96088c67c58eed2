from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User


@admin.register(User)
class HearthUserAdmin(UserAdmin):
    list_display = ("username", "email", "display_name", "is_staff")
    fieldsets = UserAdmin.fieldsets + (("Profile", {"fields": ("display_name",)}),)
