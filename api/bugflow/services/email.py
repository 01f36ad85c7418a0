"""
Serviço de envio de emails.
"""

import logging
from datetime import datetime
from typing import List

from fastapi_mail import ConnectionConfig, FastMail, MessageSchema, MessageType
from pydantic import EmailStr

from bugflow.core.config import settings

logger = logging.getLogger("bugflow.email")

ROLE_NAMES = {
    "developer": "Desenvolvedor",
    "tester": "Tester",
    "guest": "Convidado",
}


def get_email_config() -> ConnectionConfig:
    """Retorna a configuração do FastMail baseada nas settings."""
    return ConnectionConfig(
        MAIL_USERNAME=settings.smtp_user,
        MAIL_PASSWORD=settings.smtp_password,
        MAIL_FROM=settings.smtp_from_email,
        MAIL_PORT=settings.smtp_port,
        MAIL_SERVER=settings.smtp_host,
        MAIL_FROM_NAME=settings.smtp_from_name,
        MAIL_STARTTLS=settings.smtp_use_tls,
        MAIL_SSL_TLS=False,
        USE_CREDENTIALS=bool(settings.smtp_user and settings.smtp_password),
        VALIDATE_CERTS=True,
    )


async def send_email(
    to: List[EmailStr] | EmailStr,
    subject: str,
    html_body: str,
) -> bool:
    """
    Envia um email.

    Returns:
        False quando o SMTP não está configurado e nada foi enviado
    """
    if not settings.smtp_host:
        logger.warning("SMTP não configurado. Email NÃO foi enviado (para: %s, assunto: %s)", to, subject)
        return False

    recipients = [to] if isinstance(to, str) else to

    message = MessageSchema(
        subject=subject,
        recipients=recipients,
        body=html_body,
        subtype=MessageType.html,
    )

    fm = FastMail(get_email_config())

    try:
        await fm.send_message(message)
    except Exception:
        logger.exception("Erro ao enviar email para %s", ", ".join(recipients))
        raise
    logger.info("Email enviado para: %s", ", ".join(recipients))
    return True


def render_invitation_email(
    *,
    to_email: str,
    invitee_name: str | None,
    inviter_name: str,
    project_name: str,
    role: str,
    invite_token: str,
    expires_at: datetime,
) -> str:
    role_display = ROLE_NAMES.get(role, role)
    greeting = f"Olá, {invitee_name}" if invitee_name else "Olá"
    accept_url = f"{settings.frontend_url}/register?invite_token={invite_token}"
    notifications_url = f"{settings.frontend_url}/notifications"

    return f"""
<!DOCTYPE html>
<html lang="pt-BR">
<head>
    <meta charset="UTF-8">
    <title>Convite para Projeto</title>
</head>
<body style="font-family: -apple-system, 'Segoe UI', Roboto, Arial, sans-serif; color: #333;">
    <h1>Você foi convidado para um projeto!</h1>
    <p>{greeting},</p>
    <p><strong>{inviter_name}</strong> convidou você para colaborar no projeto
    <strong>{project_name}</strong> como <strong>{role_display}</strong>.</p>
    <p>Já tem conta? Veja seus convites pendentes em
    <a href="{notifications_url}">{notifications_url}</a>.</p>
    <p>Ainda não tem conta? Cadastre-se com este email ({to_email}):
    <a href="{accept_url}">aceitar convite</a>.</p>
    <p>O convite expira em {expires_at:%d/%m/%Y %H:%M} UTC.</p>
</body>
</html>
"""


async def send_invitation_email(
    *,
    to_email: str,
    invitee_name: str | None,
    inviter_name: str,
    project_name: str,
    role: str,
    invite_token: str,
    expires_at: datetime,
) -> bool:
    """
    Envia email de convite para um projeto.

    Args:
        to_email: Email do convidado
        invitee_name: Nome informado no convite (opcional)
        inviter_name: Nome de quem enviou o convite
        project_name: Nome do projeto
        role: Papel concedido (developer, tester, guest)
        invite_token: Token de uso único do convite
        expires_at: Data de expiração do convite
    """
    html_body = render_invitation_email(
        to_email=to_email,
        invitee_name=invitee_name,
        inviter_name=inviter_name,
        project_name=project_name,
        role=role,
        invite_token=invite_token,
        expires_at=expires_at,
    )
    return await send_email(
        to=to_email,
        subject=f"Convite para o projeto {project_name}",
        html_body=html_body,
    )
