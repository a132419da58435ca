import uuid
from decimal import Decimal

import django.db.models.deletion
import django.db.models.functions.text
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "phone",
                    models.CharField(
                        help_text="Solo dígitos, con código de país (ej: 584121234567)",
                        max_length=20,
                        unique=True,
                        verbose_name="teléfono",
                    ),
                ),
                ("name", models.CharField(blank=True, max_length=150, verbose_name="nombre")),
                ("is_active", models.BooleanField(db_index=True, default=True, verbose_name="activo")),
                ("opt_in_marketing", models.BooleanField(default=True, verbose_name="acepta mensajes")),
                ("opted_out_at", models.DateTimeField(blank=True, null=True, verbose_name="dado de baja en")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadatos")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="creado en")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="actualizado en")),
            ],
            options={
                "verbose_name": "cliente",
                "verbose_name_plural": "clientes",
                "ordering": ["name", "phone"],
            },
        ),
        migrations.CreateModel(
            name="Tenant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150, verbose_name="nombre")),
                ("address", models.CharField(blank=True, max_length=255, verbose_name="dirección")),
                ("phone", models.CharField(blank=True, max_length=20, verbose_name="teléfono")),
                ("is_active", models.BooleanField(default=True, verbose_name="activo")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
            ],
            options={
                "verbose_name": "negocio",
                "verbose_name_plural": "negocios",
                "ordering": ["name"],
                "constraints": [
                    models.UniqueConstraint(
                        django.db.models.functions.text.Lower("name"),
                        name="pointsman_tenant_name_ci_unique",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Branch",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150, verbose_name="nombre")),
                ("address", models.CharField(blank=True, max_length=255, verbose_name="dirección")),
                ("is_active", models.BooleanField(default=True, verbose_name="activo")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="branches",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "sucursal",
                "verbose_name_plural": "sucursales",
                "ordering": ["tenant", "name"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant", "name"),
                        name="pointsman_unique_branch_per_tenant",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Challenge",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=150, verbose_name="nombre")),
                ("description", models.TextField(blank=True, verbose_name="descripción")),
                ("points", models.PositiveIntegerField(verbose_name="puntos")),
                ("is_active", models.BooleanField(default=True, verbose_name="activo")),
                ("starts_at", models.DateTimeField(blank=True, null=True, verbose_name="inicia en")),
                ("ends_at", models.DateTimeField(blank=True, null=True, verbose_name="termina en")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
                (
                    "branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="challenges",
                        to="pointsman.branch",
                        verbose_name="sucursal",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="challenges",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "reto",
                "verbose_name_plural": "retos",
                "ordering": ["tenant", "name"],
            },
        ),
        migrations.CreateModel(
            name="Approver",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("operator_id", models.CharField(max_length=100, verbose_name="usuario")),
                ("name", models.CharField(blank=True, max_length=150, verbose_name="nombre")),
                ("pin_hash", models.CharField(max_length=128, verbose_name="PIN (hash)")),
                ("is_active", models.BooleanField(default=True, verbose_name="activo")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="approvers",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "aprobador",
                "verbose_name_plural": "aprobadores",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("tenant", "operator_id"),
                        name="pointsman_unique_approver_per_tenant",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RewardSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "points_required",
                    models.PositiveIntegerField(
                        default=100,
                        help_text="Puntos que se canjean por una gift card",
                        verbose_name="puntos requeridos",
                    ),
                ),
                (
                    "card_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("5"),
                        max_digits=10,
                        verbose_name="valor de la gift card",
                    ),
                ),
                ("expiration_days", models.PositiveIntegerField(default=30, verbose_name="días de vigencia")),
                (
                    "max_active_cards",
                    models.PositiveIntegerField(default=5, verbose_name="máximo de gift cards activas"),
                ),
                (
                    "checkin_points",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Vacío usa el valor global",
                        null=True,
                        verbose_name="puntos por check-in",
                    ),
                ),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="actualizado en")),
                (
                    "tenant",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="reward_settings",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "configuración de gift cards",
                "verbose_name_plural": "configuraciones de gift cards",
            },
        ),
        migrations.CreateModel(
            name="RewardCode",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("code", models.CharField(editable=False, max_length=32, unique=True, verbose_name="código")),
                ("value", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="valor")),
                ("points_consumed", models.PositiveIntegerField(verbose_name="puntos usados")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Activa"),
                            ("redeemed", "Canjeada"),
                            ("expired", "Expirada"),
                            ("cancelled", "Cancelada"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="estado",
                    ),
                ),
                ("expires_at", models.DateTimeField(verbose_name="vence en")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="creado en")),
                ("redeemed_at", models.DateTimeField(blank=True, null=True, verbose_name="canjeada en")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True, verbose_name="cancelada en")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reward_codes",
                        to="pointsman.customer",
                        verbose_name="cliente",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reward_codes",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "gift card",
                "verbose_name_plural": "gift cards",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["customer", "tenant", "status"],
                        name="pm_reward_cust_tenant_status",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "total_points",
                    models.IntegerField(default=0, help_text="Puntos disponibles", verbose_name="saldo de puntos"),
                ),
                (
                    "lifetime_points",
                    models.IntegerField(
                        default=0,
                        help_text="Total de puntos ganados (nunca decrece)",
                        verbose_name="puntos acumulados",
                    ),
                ),
                ("opening_balance", models.IntegerField(default=0, editable=False, verbose_name="saldo inicial")),
                ("visits_count", models.PositiveIntegerField(default=0, verbose_name="visitas")),
                ("first_visit_at", models.DateTimeField(blank=True, null=True, verbose_name="primera visita")),
                ("last_visit_at", models.DateTimeField(blank=True, null=True, verbose_name="última visita")),
                ("is_active", models.BooleanField(default=True, verbose_name="activo")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="actualizado en")),
                (
                    "branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="pointsman.branch",
                        verbose_name="última sucursal",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="pointsman.customer",
                        verbose_name="cliente",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "saldo de cliente",
                "verbose_name_plural": "saldos de clientes",
                "ordering": ["-last_visit_at"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("customer", "tenant"),
                        name="pointsman_unique_ledger_per_customer_tenant",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Redemption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("operator_id", models.CharField(max_length=100, verbose_name="operador")),
                ("approver_id", models.CharField(max_length=100, verbose_name="aprobador")),
                ("value", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="valor")),
                ("notes", models.CharField(blank=True, max_length=255, verbose_name="notas")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="pointsman.customer",
                        verbose_name="cliente",
                    ),
                ),
                (
                    "reward_code",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemption",
                        to="pointsman.rewardcode",
                        verbose_name="gift card",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "canje",
                "verbose_name_plural": "canjes",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="AuditEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "entry_type",
                    models.CharField(
                        choices=[
                            ("checkin", "Check-in"),
                            ("pos_award", "Asignación en caja"),
                            ("adjustment", "Ajuste"),
                            ("reward_issue", "Gift card generada"),
                            ("redemption", "Gift card canjeada"),
                            ("cancellation", "Gift card cancelada"),
                            ("expiration", "Gift card expirada"),
                        ],
                        max_length=20,
                        verbose_name="tipo",
                    ),
                ),
                (
                    "points_delta",
                    models.IntegerField(
                        help_text="Positivo para acumulación, negativo para descuento",
                        verbose_name="puntos",
                    ),
                ),
                ("balance_after", models.IntegerField(blank=True, null=True, verbose_name="saldo después")),
                ("operator_id", models.CharField(blank=True, max_length=100, verbose_name="operador")),
                ("approver_id", models.CharField(blank=True, max_length=100, verbose_name="aprobador")),
                ("note", models.CharField(blank=True, max_length=255, verbose_name="nota")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="creado en")),
                (
                    "branch",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to="pointsman.branch",
                        verbose_name="sucursal",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_entries",
                        to="pointsman.customer",
                        verbose_name="cliente",
                    ),
                ),
                (
                    "related_reward_code",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_entries",
                        to="pointsman.rewardcode",
                        verbose_name="gift card",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="audit_entries",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "registro de auditoría",
                "verbose_name_plural": "registros de auditoría",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["customer", "tenant", "-created_at"],
                        name="pm_audit_cust_tenant_created",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("checkin", "Check-in"),
                            ("new_customer", "Nuevo cliente"),
                            ("points_assigned", "Puntos asignados"),
                            ("reward_issued", "Gift card generada"),
                            ("reward_redeemed", "Gift card canjeada"),
                        ],
                        max_length=30,
                        verbose_name="tipo",
                    ),
                ),
                ("title", models.CharField(max_length=200, verbose_name="título")),
                ("message", models.TextField(verbose_name="mensaje")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadatos")),
                (
                    "priority",
                    models.CharField(
                        choices=[("low", "Baja"), ("normal", "Normal"), ("high", "Alta")],
                        default="normal",
                        max_length=10,
                        verbose_name="prioridad",
                    ),
                ),
                ("is_read", models.BooleanField(default=False, verbose_name="leída")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="creada en")),
                (
                    "customer",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="notifications",
                        to="pointsman.customer",
                        verbose_name="cliente",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="pointsman.tenant",
                        verbose_name="negocio",
                    ),
                ),
            ],
            options={
                "verbose_name": "notificación",
                "verbose_name_plural": "notificaciones",
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="OutboundMessage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("phone", models.CharField(db_index=True, max_length=20, verbose_name="teléfono")),
                ("body", models.TextField(verbose_name="mensaje")),
                ("reference", models.CharField(blank=True, max_length=100, verbose_name="referencia")),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pendiente"), ("sent", "Enviado"), ("failed", "Fallido")],
                        default="pending",
                        max_length=10,
                        verbose_name="estado",
                    ),
                ),
                ("attempts", models.PositiveIntegerField(default=0, verbose_name="intentos")),
                ("next_attempt_at", models.DateTimeField(blank=True, null=True, verbose_name="próximo intento")),
                ("last_error", models.TextField(blank=True, verbose_name="último error")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="creado en")),
                ("sent_at", models.DateTimeField(blank=True, null=True, verbose_name="enviado en")),
            ],
            options={
                "verbose_name": "mensaje saliente",
                "verbose_name_plural": "mensajes salientes",
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(
                        fields=["status", "next_attempt_at"],
                        name="pm_outbound_status_next",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProcessedEvent",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("nonce", models.CharField(db_index=True, max_length=255, unique=True, verbose_name="nonce")),
                ("provider", models.CharField(db_index=True, max_length=50, verbose_name="proveedor")),
                ("processed_at", models.DateTimeField(auto_now_add=True, verbose_name="procesado en")),
            ],
            options={
                "verbose_name": "evento procesado",
                "verbose_name_plural": "eventos procesados",
                "db_table": "pointsman_processed_event",
                "indexes": [
                    models.Index(
                        fields=["provider", "processed_at"],
                        name="pm_event_provider_processed",
                    ),
                ],
            },
        ),
    ]
