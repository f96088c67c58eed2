from django.contrib import admin

from .models import Property, PropertyAddon


class PropertyAddonInline(admin.TabularInline):
    model = PropertyAddon
    extra = 0


@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = ("title", "owner", "allow_instant_book", "max_guests", "hourly_rate_cents", "nightly_rate_cents")
    list_filter = ("allow_instant_book",)
    search_fields = ("title", "owner__email")
    inlines = [PropertyAddonInline]
