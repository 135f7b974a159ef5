from django.contrib import admin

from .models import Quote, QuoteCounter, QuoteHistory, QuoteLine


class QuoteLineInline(admin.TabularInline):
    model = QuoteLine
    extra = 0
    can_delete = False
    readonly_fields = (
        "position", "rate_card", "description", "category", "quantity",
        "unit_price_per_thousand", "make_ready_fixed", "units_in_thousands", "line_total", "is_manual_item",
    )
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False


class QuoteHistoryInline(admin.TabularInline):
    model = QuoteHistory
    extra = 0
    can_delete = False
    readonly_fields = ("action", "payload", "created_at")

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ("reference", "client_name", "project_name", "quantity", "status", "owner", "pricing_version", "updated_at")
    search_fields = ("reference", "client_name", "project_name")
    list_filter = ("status", "pricing_version", "created_at")
    date_hierarchy = "created_at"
    readonly_fields = ("base_reference", "revision_number", "reference", "pricing_version", "created_at", "updated_at")
    inlines = [QuoteLineInline, QuoteHistoryInline]


@admin.register(QuoteHistory)
class QuoteHistoryAdmin(admin.ModelAdmin):
    list_display = ("quote", "action", "created_at")
    list_filter = ("action",)
    search_fields = ("quote__reference",)

    # Append-only
    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(QuoteCounter)
class QuoteCounterAdmin(admin.ModelAdmin):
    list_display = ("id", "last_number")
