from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('pricing', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='QuoteCounter',
            fields=[
                ('id', models.CharField(default='singleton', max_length=32, primary_key=True, serialize=False)),
                ('last_number', models.PositiveIntegerField(default=0)),
            ],
            options={
                'db_table': 'quote_counter',
            },
        ),
        migrations.CreateModel(
            name='Quote',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('base_reference', models.CharField(max_length=16)),
                ('revision_number', models.PositiveIntegerField(default=0)),
                ('reference', models.CharField(max_length=32, unique=True)),
                ('client_name', models.CharField(max_length=255)),
                ('project_name', models.CharField(max_length=255)),
                ('quantity', models.PositiveIntegerField()),
                ('discount_percentage', models.DecimalField(decimal_places=2, default=0, max_digits=5)),
                ('inserts_count', models.PositiveIntegerField(default=1)),
                ('pricing_version', models.CharField(default='enclose-v2', max_length=16)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('SENT', 'Sent'), ('WON', 'Won'), ('LOST', 'Lost')], default='DRAFT', max_length=20)),
                ('pdf_url', models.URLField(blank=True, max_length=500, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('owner', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='quotes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'quotes',
                'ordering': ['-updated_at'],
                'unique_together': {('base_reference', 'revision_number')},
                'indexes': [
                    models.Index(fields=['owner', '-updated_at'], name='quotes_owner_i_5c1e0b_idx'),
                    models.Index(fields=['status'], name='quotes_status_7d2f41_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='QuoteLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('rate_card_code', models.CharField(blank=True, max_length=50, null=True)),
                ('position', models.PositiveIntegerField(default=0)),
                ('description', models.CharField(max_length=255)),
                ('unit_price_per_thousand', models.DecimalField(decimal_places=4, max_digits=14)),
                ('make_ready_fixed', models.DecimalField(decimal_places=4, max_digits=14)),
                ('units_in_thousands', models.DecimalField(decimal_places=4, max_digits=14)),
                ('line_total', models.DecimalField(decimal_places=4, max_digits=14)),
                ('category', models.CharField(default='PRINT', max_length=32)),
                ('quantity', models.PositiveIntegerField()),
                ('quantity_override', models.BooleanField(default=False)),
                ('is_manual_item', models.BooleanField(default=False)),
                ('custom_pricing_unit', models.CharField(blank=True, max_length=16, null=True)),
                ('quote', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='quotes.quote')),
                ('rate_card', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='pricing.ratecard')),
            ],
            options={
                'db_table': 'quote_lines',
                'ordering': ['position', 'id'],
            },
        ),
        migrations.CreateModel(
            name='QuoteHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('CREATED', 'Created'), ('UPDATED', 'Updated'), ('STATUS_CHANGED', 'Status changed'), ('PDF_GENERATED', 'PDF generated'), ('EMAIL_SENT', 'Email sent')], max_length=20)),
                ('payload', models.JSONField(default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('quote', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='history', to='quotes.quote')),
            ],
            options={
                'db_table': 'quote_history',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
