# Generated manually for the initial CivicHub schema.

import django.core.serializers.json
import django.db.models.deletion
import uuid

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Issue",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for the issue",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("title", models.CharField(help_text="Brief title describing the issue", max_length=200)),
                ("description", models.TextField(blank=True, help_text="Detailed description of the issue")),
                (
                    "category",
                    models.CharField(
                        choices=[
                            ("roads", "Roads & Transportation"),
                            ("utilities", "Utilities"),
                            ("parks", "Parks & Recreation"),
                            ("safety", "Public Safety"),
                            ("environment", "Environment"),
                            ("other", "Other"),
                        ],
                        help_text="Category of the reported issue",
                        max_length=20,
                    ),
                ),
                (
                    "priority",
                    models.CharField(
                        choices=[
                            ("low", "Low"),
                            ("medium", "Medium"),
                            ("high", "High"),
                            ("urgent", "Urgent"),
                        ],
                        default="medium",
                        help_text="Priority chosen by the reporter",
                        max_length=10,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("in_progress", "In Progress"),
                            ("resolved", "Resolved"),
                        ],
                        default="pending",
                        help_text="Current status of the issue",
                        max_length=20,
                    ),
                ),
                ("location_lat", models.FloatField(blank=True, null=True)),
                ("location_lng", models.FloatField(blank=True, null=True)),
                (
                    "address",
                    models.CharField(blank=True, help_text="Physical address of the issue location", max_length=255),
                ),
                (
                    "photo_urls",
                    models.JSONField(blank=True, default=list, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "video_urls",
                    models.JSONField(blank=True, default=list, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "document_urls",
                    models.JSONField(blank=True, default=list, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                ("voice_description_url", models.URLField(blank=True, max_length=500)),
                (
                    "proof_of_fix_urls",
                    models.JSONField(blank=True, default=list, encoder=django.core.serializers.json.DjangoJSONEncoder),
                ),
                (
                    "is_anonymous",
                    models.BooleanField(default=False, help_text="Hide the reporter from public listings"),
                ),
                ("upvotes", models.PositiveIntegerField(default=0)),
                ("assigned_department", models.CharField(blank=True, max_length=100)),
                ("government_notes", models.TextField(blank=True)),
                (
                    "coins_awarded",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Civic Coins credited to the reporter on resolution",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "assigned_to",
                    models.ForeignKey(
                        blank=True,
                        help_text="Government official handling this issue",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="assigned_issues",
                        to="accounts.profile",
                    ),
                ),
                (
                    "reporter",
                    models.ForeignKey(
                        help_text="Citizen who submitted the issue",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reported_issues",
                        to="accounts.profile",
                    ),
                ),
            ],
            options={
                "verbose_name": "Issue",
                "verbose_name_plural": "Issues",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["category"], name="reports_iss_categor_5d1e2a_idx"),
                    models.Index(fields=["status"], name="reports_iss_status_7c3f41_idx"),
                    models.Index(fields=["priority"], name="reports_iss_priorit_0b9e6d_idx"),
                    models.Index(fields=["created_at"], name="reports_iss_created_4a8c12_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=(
                            models.Q(("resolved_at__isnull", False), ("status", "resolved"))
                            | models.Q(
                                models.Q(("status", "resolved"), _negated=True),
                                ("resolved_at__isnull", True),
                            )
                        ),
                        name="issue_resolved_at_matches_status",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("coins_awarded", 0), ("status", "resolved"), _connector="OR"),
                        name="issue_coins_only_when_resolved",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("action", models.CharField(max_length=50)),
                (
                    "old_value",
                    models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True),
                ),
                (
                    "new_value",
                    models.JSONField(blank=True, encoder=django.core.serializers.json.DjangoJSONEncoder, null=True),
                ),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "actor",
                    models.ForeignKey(
                        help_text="Profile that made the change",
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        to="accounts.profile",
                    ),
                ),
                (
                    "issue",
                    models.ForeignKey(
                        help_text="Issue that was modified",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="audit_logs",
                        to="reports.issue",
                    ),
                ),
            ],
            options={
                "verbose_name": "Audit Log Entry",
                "verbose_name_plural": "Audit Log Entries",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["issue", "created_at"], name="reports_aud_issue_i_6e2b90_idx"),
                    models.Index(fields=["action"], name="reports_aud_action_3d7f58_idx"),
                ],
            },
        ),
    ]
