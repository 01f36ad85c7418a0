from datetime import datetime, timezone

import pytest

from bugflow.core.config import settings
from bugflow.services import email as email_service


def test_invitation_email_contains_links_and_role():
    html = email_service.render_invitation_email(
        to_email="dev@example.com",
        invitee_name="Dev",
        inviter_name="Olga",
        project_name="Portal",
        role="tester",
        invite_token="tok123",
        expires_at=datetime(2026, 10, 25, 9, 30, tzinfo=timezone.utc),
    )

    assert "Olá, Dev" in html
    assert "Portal" in html
    assert "Tester" in html
    assert f"{settings.frontend_url}/register?invite_token=tok123" in html
    assert "25/10/2026 09:30" in html


@pytest.mark.anyio
async def test_send_email_is_skipped_without_smtp(monkeypatch):
    monkeypatch.setattr(settings, "smtp_host", "")

    sent = await email_service.send_invitation_email(
        to_email="dev@example.com",
        invitee_name=None,
        inviter_name="Olga",
        project_name="Portal",
        role="developer",
        invite_token="tok123",
        expires_at=datetime(2026, 10, 25, tzinfo=timezone.utc),
    )
    assert sent is False
