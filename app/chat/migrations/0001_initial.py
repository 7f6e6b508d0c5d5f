import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import chat.models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Room",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("room_id", models.CharField(help_text="Stable external identifier", max_length=80, unique=True)),
                ("name", models.CharField(max_length=100)),
                ("description", models.TextField(blank=True, default="")),
                ("room_type", models.CharField(choices=[("public", "Public"), ("private", "Private"), ("subject", "Subject"), ("group", "Group"), ("study", "Study")], db_index=True, default="public", max_length=10)),
                ("avatar", models.CharField(blank=True, default="", max_length=500)),
                ("allow_file_sharing", models.BooleanField(default=True)),
                ("allow_voice_messages", models.BooleanField(default=True)),
                ("allow_video_messages", models.BooleanField(default=True)),
                ("moderation_enabled", models.BooleanField(default=False)),
                ("max_file_size", models.PositiveBigIntegerField(default=10485760, help_text="Largest attachment accepted, in bytes")),
                ("allowed_file_types", models.JSONField(blank=True, default=chat.models.default_allowed_file_types, help_text="MIME patterns such as image/* accepted for attachments")),
                ("subject", models.CharField(blank=True, db_index=True, default="", max_length=100)),
                ("class_level", models.CharField(blank=True, db_index=True, default="", max_length=50)),
                ("tags", models.JSONField(blank=True, default=list)),
                ("category", models.CharField(blank=True, default="", max_length=50)),
                ("created_by_id", models.CharField(blank=True, default="", max_length=64)),
                ("created_by_model", models.CharField(blank=True, choices=[("User", "User"), ("Admin", "Admin")], default="", max_length=10)),
                ("last_message_content", models.CharField(blank=True, default="", max_length=100)),
                ("last_message_at", models.DateTimeField(blank=True, null=True)),
                ("last_message_sender_name", models.CharField(blank=True, default="", max_length=120)),
                ("last_message_type", models.CharField(blank=True, choices=[("text", "Text"), ("file", "File"), ("image", "Image"), ("video", "Video"), ("audio", "Audio"), ("system", "System")], default="", max_length=10)),
                ("total_messages", models.PositiveIntegerField(default=0)),
                ("total_members", models.PositiveIntegerField(default=0)),
                ("last_activity", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ("is_active", models.BooleanField(db_index=True, default=True)),
            ],
            options={
                "db_table": "chat_room",
                "ordering": ["-last_activity"],
                "indexes": [
                    models.Index(fields=["room_type", "is_active"], name="chat_room_type_active_idx"),
                    models.Index(fields=["subject", "class_level"], name="chat_room_subject_class_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="RoomMember",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("identity_id", models.CharField(db_index=True, max_length=64)),
                ("identity_model", models.CharField(choices=[("User", "User"), ("Admin", "Admin")], default="User", max_length=10)),
                ("name", models.CharField(blank=True, default="", max_length=120)),
                ("identity_role", models.CharField(choices=[("student", "Student"), ("teacher", "Teacher"), ("admin", "Admin"), ("other", "Other"), ("parent", "Parent"), ("sponsor", "Sponsor")], default="student", max_length=10)),
                ("avatar", models.CharField(blank=True, default="", max_length=500)),
                ("role_in_room", models.CharField(choices=[("admin", "Admin"), ("moderator", "Moderator"), ("member", "Member")], default="member", max_length=10)),
                ("can_send_messages", models.BooleanField(default=True)),
                ("can_delete_messages", models.BooleanField(default=False)),
                ("can_add_members", models.BooleanField(default=False)),
                ("can_remove_members", models.BooleanField(default=False)),
                ("joined_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("room", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="members", to="chat.room")),
            ],
            options={
                "db_table": "chat_room_member",
                "ordering": ["joined_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("room", "identity_id"), name="chat_member_unique_identity"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("is_deleted", models.BooleanField(db_index=True, default=False, help_text="Whether this record has been soft deleted")),
                ("deleted_at", models.DateTimeField(blank=True, help_text="Timestamp when this record was soft deleted", null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("sequence", models.PositiveBigIntegerField()),
                ("sender_id", models.CharField(db_index=True, max_length=64)),
                ("sender_model", models.CharField(choices=[("User", "User"), ("Admin", "Admin")], default="User", max_length=10)),
                ("sender_name", models.CharField(max_length=120)),
                ("sender_role", models.CharField(choices=[("student", "Student"), ("teacher", "Teacher"), ("admin", "Admin"), ("other", "Other"), ("parent", "Parent"), ("sponsor", "Sponsor")], default="student", max_length=10)),
                ("sender_avatar", models.CharField(blank=True, default="", max_length=500)),
                ("content", models.TextField(blank=True, default="")),
                ("message_type", models.CharField(choices=[("text", "Text"), ("file", "File"), ("image", "Image"), ("video", "Video"), ("audio", "Audio"), ("system", "System")], default="text", max_length=10)),
                ("attachment", models.JSONField(blank=True, null=True)),
                ("reply_to_sender_name", models.CharField(blank=True, default="", max_length=120)),
                ("reply_to_content", models.CharField(blank=True, default="", max_length=100)),
                ("reply_to_truncated", models.BooleanField(default=False)),
                ("deleted_by", models.CharField(blank=True, default="", max_length=64)),
                ("deleted_by_model", models.CharField(blank=True, choices=[("User", "User"), ("Admin", "Admin"), ("Teacher", "Teacher")], default="", max_length=10)),
                ("is_edited", models.BooleanField(default=False)),
                ("edited_at", models.DateTimeField(blank=True, null=True)),
                ("original_content", models.TextField(blank=True, null=True)),
                ("reply_to", models.ForeignKey(blank=True, db_constraint=False, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="replies", to="chat.message")),
                ("room", models.ForeignKey(db_column="room_id", on_delete=django.db.models.deletion.PROTECT, related_name="messages", to="chat.room", to_field="room_id")),
            ],
            options={
                "db_table": "chat_message",
                "ordering": ["room_id", "sequence"],
                "indexes": [
                    models.Index(condition=models.Q(("is_deleted", False)), fields=["room", "-sequence"], name="chat_msg_room_seq_live_idx"),
                    models.Index(fields=["room", "created_at"], name="chat_msg_room_created_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("room", "sequence"), name="chat_message_room_sequence_uniq"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MessageReaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created")),
                ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
                ("emoji", models.CharField(max_length=32)),
                ("identity_id", models.CharField(max_length=64)),
                ("identity_model", models.CharField(choices=[("User", "User"), ("Admin", "Admin")], default="User", max_length=10)),
                ("name", models.CharField(blank=True, default="", max_length=120)),
                ("message", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="reactions", to="chat.message")),
            ],
            options={
                "db_table": "chat_message_reaction",
                "ordering": ["created_at", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("message", "emoji", "identity_id"), name="chat_reaction_unique_identity_emoji"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReadReceipt",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("identity_id", models.CharField(db_index=True, max_length=64)),
                ("identity_model", models.CharField(choices=[("User", "User"), ("Admin", "Admin")], default="User", max_length=10)),
                ("read_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("message", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="read_receipts", to="chat.message")),
            ],
            options={
                "db_table": "chat_read_receipt",
                "ordering": ["read_at"],
                "constraints": [
                    models.UniqueConstraint(fields=("message", "identity_id"), name="chat_receipt_unique_identity"),
                ],
            },
        ),
    ]
