"""
Seed the rooms every portal starts with.
"""

from django.db import migrations

DEFAULT_ROOMS = (
    ("general", "General Chat", "General discussion for everyone"),
    ("students", "Students Lounge", "Chat room for students"),
    ("teachers", "Teachers Room", "Private chat for teachers"),
)


def create_default_rooms(apps, schema_editor):
    Room = apps.get_model("chat", "Room")
    for room_id, name, description in DEFAULT_ROOMS:
        Room.objects.get_or_create(
            room_id=room_id,
            defaults={"name": name, "description": description, "room_type": "public"},
        )


def remove_default_rooms(apps, schema_editor):
    Room = apps.get_model("chat", "Room")
    Room.objects.filter(
        room_id__in=[room_id for room_id, _, _ in DEFAULT_ROOMS], total_messages=0
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("chat", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(create_default_rooms, remove_default_rooms),
    ]
