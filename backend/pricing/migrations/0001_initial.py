from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='RateCard',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('code', models.CharField(max_length=50, unique=True)),
                ('name', models.CharField(max_length=200)),
                ('unit', models.CharField(choices=[('per_1k', 'Per 1,000'), ('job', 'Per job'), ('enclose', 'Per insert (enclosing)')], default='per_1k', max_length=16)),
                ('category', models.CharField(choices=[('ENVELOPES', 'Envelopes'), ('PRINT', 'Print'), ('DATA_PROCESSING', 'Data Processing'), ('PERSONALISATION', 'Personalisation'), ('FINISHING', 'Finishing'), ('ENCLOSING', 'Enclosing'), ('POSTAGE', 'Postage')], default='PRINT', max_length=32)),
                ('notes', models.TextField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'rate_cards',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Band',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('from_qty', models.PositiveIntegerField()),
                ('to_qty', models.PositiveIntegerField()),
                ('price_per_thousand', models.DecimalField(decimal_places=4, max_digits=12)),
                ('make_ready_fixed', models.DecimalField(decimal_places=2, max_digits=12)),
                ('rate_card', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='bands', to='pricing.ratecard')),
            ],
            options={
                'db_table': 'rate_card_bands',
                'ordering': ['rate_card', 'from_qty'],
                'unique_together': {('rate_card', 'from_qty')},
            },
        ),
    ]
