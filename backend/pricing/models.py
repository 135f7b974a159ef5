from django.db import models


class RateCardUnit(models.TextChoices):
    PER_THOUSAND = 'per_1k', 'Per 1,000'
    PER_JOB = 'job', 'Per job'
    PER_INSERT = 'enclose', 'Per insert (enclosing)'


class Category(models.TextChoices):
    ENVELOPES = 'ENVELOPES', 'Envelopes'
    PRINT = 'PRINT', 'Print'
    DATA_PROCESSING = 'DATA_PROCESSING', 'Data Processing'
    PERSONALISATION = 'PERSONALISATION', 'Personalisation'
    FINISHING = 'FINISHING', 'Finishing'
    ENCLOSING = 'ENCLOSING', 'Enclosing'
    POSTAGE = 'POSTAGE', 'Postage'


class RateCard(models.Model):
    id = models.BigAutoField(primary_key=True)
    code = models.CharField(max_length=50, unique=True)
    name = models.CharField(max_length=200)
    unit = models.CharField(max_length=16, choices=RateCardUnit.choices, default=RateCardUnit.PER_THOUSAND)
    # Cards created before category tracking fall back to PRINT
    category = models.CharField(max_length=32, choices=Category.choices, default=Category.PRINT)
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'rate_cards'
        ordering = ['name']

    def __str__(self):
        return f"{self.code} - {self.name}"


class Band(models.Model):
    id = models.BigAutoField(primary_key=True)
    rate_card = models.ForeignKey('pricing.RateCard', models.CASCADE, related_name='bands')
    from_qty = models.PositiveIntegerField()
    to_qty = models.PositiveIntegerField()
    price_per_thousand = models.DecimalField(max_digits=12, decimal_places=4)
    make_ready_fixed = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        db_table = 'rate_card_bands'
        ordering = ['rate_card', 'from_qty']
        unique_together = (('rate_card', 'from_qty'),)

    def __str__(self):
        return f"{self.rate_card.code} {self.from_qty}-{self.to_qty}"
