from django.conf import settings
from django.db import models


class QuoteStatus(models.TextChoices):
    DRAFT = 'DRAFT', 'Draft'
    SENT = 'SENT', 'Sent'
    WON = 'WON', 'Won'
    LOST = 'LOST', 'Lost'


class HistoryAction(models.TextChoices):
    CREATED = 'CREATED', 'Created'
    UPDATED = 'UPDATED', 'Updated'
    STATUS_CHANGED = 'STATUS_CHANGED', 'Status changed'
    PDF_GENERATED = 'PDF_GENERATED', 'PDF generated'
    EMAIL_SENT = 'EMAIL_SENT', 'Email sent'


class Quote(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='quotes'
    )
    base_reference = models.CharField(max_length=16)
    revision_number = models.PositiveIntegerField(default=0)
    reference = models.CharField(max_length=32, unique=True)
    client_name = models.CharField(max_length=255)
    project_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()
    discount_percentage = models.DecimalField(max_digits=5, decimal_places=2, default=0)
    inserts_count = models.PositiveIntegerField(default=1)
    # Enclosing semantics the lines were priced with
    pricing_version = models.CharField(max_length=16, default='enclose-v2')
    status = models.CharField(max_length=20, choices=QuoteStatus.choices, default=QuoteStatus.DRAFT)
    pdf_url = models.URLField(max_length=500, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'quotes'
        unique_together = [('base_reference', 'revision_number')]
        indexes = [
            models.Index(fields=['owner', '-updated_at'], name='quotes_owner_i_5c1e0b_idx'),
            models.Index(fields=['status'], name='quotes_status_7d2f41_idx'),
        ]
        ordering = ['-updated_at']

    def __str__(self):
        return self.reference


class QuoteLine(models.Model):
    quote = models.ForeignKey(Quote, on_delete=models.CASCADE, related_name='lines')
    # Null for bespoke items and for lines whose rate card was later deleted
    rate_card = models.ForeignKey('pricing.RateCard', null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    rate_card_code = models.CharField(max_length=50, blank=True, null=True)
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=255)
    unit_price_per_thousand = models.DecimalField(max_digits=14, decimal_places=4)
    make_ready_fixed = models.DecimalField(max_digits=14, decimal_places=4)
    units_in_thousands = models.DecimalField(max_digits=14, decimal_places=4)
    line_total = models.DecimalField(max_digits=14, decimal_places=4)
    category = models.CharField(max_length=32, default='PRINT')
    quantity = models.PositiveIntegerField()
    quantity_override = models.BooleanField(default=False)
    is_manual_item = models.BooleanField(default=False)
    custom_pricing_unit = models.CharField(max_length=16, blank=True, null=True)

    class Meta:
        db_table = 'quote_lines'
        ordering = ['position', 'id']

    def __str__(self):
        return f"{self.quote.reference} #{self.position} {self.description}"


class QuoteHistory(models.Model):
    quote = models.ForeignKey(Quote, on_delete=models.CASCADE, related_name='history')
    action = models.CharField(max_length=20, choices=HistoryAction.choices)
    payload = models.JSONField(default=dict)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'quote_history'
        ordering = ['-created_at', '-id']

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Quote history entries are append-only")
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.quote.reference} {self.action}"


class QuoteCounter(models.Model):
    """Single row holding the last issued quote number."""
    id = models.CharField(max_length=32, primary_key=True, default='singleton')
    last_number = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = 'quote_counter'

    def __str__(self):
        return f"{self.id}: {self.last_number}"
