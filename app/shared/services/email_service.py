# app/shared/services/email_service.py

import html
import logging
from typing import List, Optional

import resend

from app.config.settings import settings

logger = logging.getLogger(__name__)

# Límite de emails por llamada al endpoint batch de Resend
BATCH_LIMIT = 100


def build_email_html(client_name: Optional[str], content: str) -> str:
    """Cuerpo HTML de un email masivo: saludo con el nombre del cliente y el contenido del template"""
    greeting = f"Hola {html.escape(client_name)}," if client_name else "Hola,"
    body = content if "<" in content else html.escape(content).replace("\n", "<br>")
    return (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; color: #2a2a2a;">'
        f'<p style="font-size: 16px;">{greeting}</p>'
        f'<div style="font-size: 15px; line-height: 1.5;">{body}</div>'
        '<hr style="border: none; border-top: 1px solid #e5e5e5; margin: 24px 0;">'
        '<p style="font-size: 12px; color: #888888;">Barfer - Alimento natural para mascotas</p>'
        '</div>'
    )


class EmailService:

    def __init__(self):
        """Inicializar el cliente de Resend"""
        self.sender = settings.email_from
        if not settings.resend_api_key:
            logger.warning("⚠️ Resend no está configurado (RESEND_API_KEY)")
            self.configured = False
            return

        resend.api_key = settings.resend_api_key
        self.configured = True

    def build_payload(self, to: str, subject: str, client_name: Optional[str], content: str) -> dict:
        return {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": build_email_html(client_name, content),
        }

    def send_batch(self, payloads: List[dict]) -> int:
        """
        Envía los emails por el endpoint batch de Resend

        Returns:
            int: cantidad de emails aceptados
        """
        if not self.configured:
            raise RuntimeError("Servicio de email no configurado")

        sent = 0
        for start in range(0, len(payloads), BATCH_LIMIT):
            chunk = payloads[start:start + BATCH_LIMIT]
            response = resend.Batch.send(chunk)
            logger.info(f"Resend batch aceptado: {len(chunk)} emails")
            data = response.get("data") if isinstance(response, dict) else None
            sent += len(data) if data is not None else len(chunk)
        return sent
