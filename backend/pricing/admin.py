from django.contrib import admin, messages

from pricing.models import Band, RateCard
from pricing.services.catalog import validate_rate_card


class BandInline(admin.TabularInline):
    model = Band
    extra = 0
    ordering = ("from_qty",)


@admin.register(RateCard)
class RateCardAdmin(admin.ModelAdmin):
    list_display = ("id", "code", "name", "unit", "category", "updated_at")
    list_filter = ("unit", "category")
    search_fields = ("code", "name")
    inlines = [BandInline]
    actions = ["validate_bands"]

    def validate_bands(self, request, queryset):
        any_warn = False
        for card in queryset.prefetch_related("bands"):
            for problem in validate_rate_card(card):
                any_warn = True
                messages.warning(request, f"Rate card {card.code}: {problem}")
        if not any_warn:
            messages.info(request, "Selected rate cards have valid bands.")

    validate_bands.short_description = "Validate rate card bands"
