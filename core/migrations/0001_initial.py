# Generated manually for the initial CivicHub schema.

import django.db.models.deletion
import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        ("reports", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CivicCoinTransaction",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.PositiveIntegerField(help_text="Coins credited")),
                (
                    "transaction_type",
                    models.CharField(
                        choices=[("issue_resolved", "Issue Resolved")],
                        default="issue_resolved",
                        max_length=30,
                    ),
                ),
                ("description", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "issue",
                    models.ForeignKey(
                        blank=True,
                        help_text="Issue that earned this reward",
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="coin_transactions",
                        to="reports.issue",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        help_text="Profile whose balance this entry changes",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="coin_transactions",
                        to="accounts.profile",
                    ),
                ),
            ],
            options={
                "verbose_name": "Civic Coin Transaction",
                "verbose_name_plural": "Civic Coin Transactions",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "created_at"], name="core_civicc_user_id_9f2a31_idx"),
                    models.Index(fields=["transaction_type"], name="core_civicc_transac_1c6d74_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("amount__gt", 0)),
                        name="coin_transaction_amount_positive",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("issue__isnull", False)),
                        fields=("issue", "transaction_type"),
                        name="unique_reward_per_issue",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("message", models.TextField()),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("issue_claimed", "Issue Claimed"),
                            ("issue_resolved", "Issue Resolved"),
                            ("info", "Information"),
                        ],
                        default="info",
                        max_length=30,
                    ),
                ),
                ("read", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "issue",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="notifications",
                        to="reports.issue",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="notifications",
                        to="accounts.profile",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "read"], name="core_notifi_user_id_5b8e07_idx"),
                    models.Index(fields=["created_at"], name="core_notifi_created_2e4c96_idx"),
                ],
            },
        ),
    ]
