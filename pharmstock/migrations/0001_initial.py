"""
Initial migration for Pharmstock models.
"""

from decimal import Decimal
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Pharmstock models: Product, Batch, StockMovement."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(help_text='Código do produto. Prefixo dos números de lote gerados.', max_length=50, unique=True, verbose_name='Código')),
                ('name', models.CharField(max_length=200, verbose_name='Nome')),
                ('reorder_level', models.PositiveIntegerField(default=0, help_text='Estoque disponível até este valor é considerado baixo', verbose_name='Ponto de reposição')),
                ('unit', models.CharField(blank=True, default='', max_length=30, verbose_name='Unidade')),
                ('unit_quantity', models.DecimalField(decimal_places=3, default=Decimal('1'), max_digits=10, verbose_name='Quantidade por unidade')),
                ('stock_quantity', models.PositiveIntegerField(default=0, editable=False, verbose_name='Estoque')),
                ('version', models.PositiveBigIntegerField(default=0, editable=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Produto',
                'verbose_name_plural': 'Produtos',
                'ordering': ['code'],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(stock_quantity__gte=0), name='pharmstock_product_stock_gte_zero'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Batch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('batch_number', models.CharField(help_text='Único por produto. Gerado automaticamente se vazio.', max_length=64, verbose_name='Número do Lote')),
                ('expiration_date', models.DateField(db_index=True, verbose_name='Data de Validade')),
                ('received_date', models.DateField(verbose_name='Data de Recebimento')),
                ('quantity_received', models.PositiveIntegerField(verbose_name='Quantidade Recebida')),
                ('quantity_remaining', models.PositiveIntegerField(verbose_name='Quantidade Restante')),
                ('unit_cost', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Custo Unitário')),
                ('sale_price', models.DecimalField(decimal_places=2, max_digits=12, verbose_name='Preço de Venda')),
                ('supplier', models.CharField(blank=True, default='', max_length=200, verbose_name='Fornecedor')),
                ('notes', models.TextField(blank=True, default='', verbose_name='Observações')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Atualizado em')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='pharmstock.product', verbose_name='Produto')),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['expiration_date', 'received_date', 'id'],
                'indexes': [
                    models.Index(fields=['product', 'expiration_date'], name='pharmstock_batch_expiry_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'batch_number'), name='pharmstock_unique_batch_number_per_product'),
                    models.CheckConstraint(condition=models.Q(quantity_received__gt=0), name='pharmstock_batch_received_gt_zero'),
                    models.CheckConstraint(condition=models.Q(quantity_remaining__lte=models.F('quantity_received')), name='pharmstock_batch_remaining_lte_received'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=[('purchase', 'Compra'), ('sale', 'Venda'), ('pos_sale', 'Venda no balcão'), ('order_reservation', 'Reserva de pedido'), ('manual_adjustment', 'Ajuste manual'), ('return', 'Devolução'), ('expired', 'Baixa por vencimento')], db_index=True, max_length=30, verbose_name='Tipo')),
                ('delta', models.IntegerField(help_text='Positivo = entrada, Negativo = saída', verbose_name='Variação')),
                ('unit_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True, verbose_name='Custo Unitário')),
                ('reference_type', models.CharField(blank=True, default='', max_length=100, verbose_name='Tipo de Referência')),
                ('reference_id', models.CharField(blank=True, default='', max_length=100, verbose_name='ID da Referência')),
                ('note', models.TextField(blank=True, default='', verbose_name='Observação')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='pharmstock.batch', verbose_name='Lote')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='pharmstock.product', verbose_name='Produto')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['timestamp', 'id'],
                'indexes': [
                    models.Index(fields=['product', 'timestamp'], name='pharmstock_move_product_idx'),
                    models.Index(fields=['batch', 'timestamp'], name='pharmstock_move_batch_idx'),
                    models.Index(fields=['reference_type', 'reference_id'], name='pharmstock_move_ref_idx'),
                ],
            },
        ),
    ]
