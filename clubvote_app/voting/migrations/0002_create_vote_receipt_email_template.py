from __future__ import annotations

from django.db import migrations

_CONTENT = (
    "{% autoescape off %}"
    "Your ballot for {{ election_title }} has been recorded.\n"
    "\n"
    "Keep these receipts to verify your vote later. Anyone holding a receipt can\n"
    "see the choice it records, so do not share them.\n"
    "\n"
    "{% for r in receipts %}{{ r.receipt }}  ({{ r.cast_at }})\n"
    "  {{ r.verify_url }}\n"
    "{% endfor %}"
    "{% endautoescape %}"
)


def add_vote_receipt_template(apps, schema_editor) -> None:
    EmailTemplate = apps.get_model("post_office", "EmailTemplate")
    EmailTemplate.objects.update_or_create(
        name="vote-receipt",
        defaults={
            "description": "Receipts sent to a voter after their ballot is recorded",
            "subject": "{% autoescape off %}Your ballot receipt for {{ election_title }}{% endautoescape %}",
            "content": _CONTENT,
            "html_content": "",
        },
    )


def noop_reverse(apps, schema_editor) -> None:
    # Keep the template on rollback so admin edits are not lost.
    return


class Migration(migrations.Migration):
    dependencies = [
        ("voting", "0001_initial"),
        ("post_office", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(add_vote_receipt_template, reverse_code=noop_reverse),
    ]
