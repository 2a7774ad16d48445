"""
Message catalog mapping order event types to notification content.

Two text tables are kept: general messages used by the fallback sender
(every event type has one), and order status notifications used by the
dispatcher, where order:created is intentionally absent because creation
confirmations are sent by the ordering flow itself.
"""

from typing import Optional, Dict, Mapping

from order_pipeline.models.order_models import EventType
from order_pipeline.notifications.models import MessageText


OTP_VERIFICATION = "auth:otp_verification"

DEFAULT_LANGUAGE = "es"

DEFAULT_MESSAGES: Dict[str, MessageText] = {
    EventType.ACCEPTED.value: MessageText(
        title="Pedido aceptado",
        body="🧑🏽‍🍳 Ahora estamos trabajando en tu pedido, te avisaremos cuando esté listo"
    ),
    EventType.CREATED.value: MessageText(
        title="Pedido recibido",
        body="📝 Tu pedido ha sido recibido. Te notificaremos cuando sea aceptado."
    ),
    EventType.DECLINED.value: MessageText(
        title="Pedido no aceptado",
        body="🚨 Tu pedido no pudo ser aceptado. Comunícate con nosotros para resolverlo."
    ),
    EventType.DELIVERED.value: MessageText(
        title="Pedido entregado",
        body="Disfruta tu pedido ☕️🥐, esperamos que lo disfrutes!"
    ),
    EventType.CLOSED.value: MessageText(
        title="Pago confirmado",
        body="☕️ Tu pedido ha sido entregado. ¡Gracias por tu visita!"
    ),
    EventType.READY.value: MessageText(
        title="Pedido listo",
        body="✅ Tu pedido ya está listo, te esperamos!"
    ),
    OTP_VERIFICATION: MessageText(
        title="Código de verificación",
        body="Tu código de verificación es {{1}}"
    ),
}

DEFAULT_ORDER_STATUS_MESSAGES: Dict[str, MessageText] = {
    EventType.ACCEPTED.value: DEFAULT_MESSAGES[EventType.ACCEPTED.value],
    EventType.READY.value: DEFAULT_MESSAGES[EventType.READY.value],
    EventType.DELIVERED.value: DEFAULT_MESSAGES[EventType.DELIVERED.value],
    EventType.CLOSED.value: MessageText(
        title="Pedido completado",
        body="☕️ Tu pedido ha sido entregado. ¡Gracias por tu visita!"
    ),
    EventType.DECLINED.value: MessageText(
        title="Pedido no aceptado",
        body="🚨 Comunícate con nosotros para resolverlo cuanto antes"
    ),
}

# Twilio Content API template SIDs per language; empty means not provisioned
DEFAULT_WHATSAPP_TEMPLATES: Dict[str, Dict[str, str]] = {
    key: {'en': '', 'es': ''}
    for key in [OTP_VERIFICATION] + [event_type.value for event_type in EventType]
}


def _key(message_type) -> str:
    return message_type.value if isinstance(message_type, EventType) else str(message_type)


class MessageCatalog:
    """
    Lookup of notification text and channel templates by message type.

    Instances are injected into the dispatcher and fallback sender so that
    alternate catalogs can be swapped in without touching module state.
    """

    def __init__(
        self,
        messages: Optional[Mapping[str, MessageText]] = None,
        order_status_messages: Optional[Mapping[str, MessageText]] = None,
        whatsapp_templates: Optional[Mapping[str, Mapping[str, str]]] = None,
        default_language: str = DEFAULT_LANGUAGE
    ):
        self._messages = dict(DEFAULT_MESSAGES if messages is None else messages)
        self._order_status_messages = dict(
            DEFAULT_ORDER_STATUS_MESSAGES if order_status_messages is None else order_status_messages
        )
        self._whatsapp_templates = {
            key: dict(value)
            for key, value in (DEFAULT_WHATSAPP_TEMPLATES if whatsapp_templates is None else whatsapp_templates).items()
        }
        self.default_language = default_language

    def message_for(self, message_type) -> Optional[MessageText]:
        """Get push/SMS text for a message type."""
        return self._messages.get(_key(message_type))

    def order_status_notification(self, event_type) -> Optional[MessageText]:
        """Get the order status notification sent by the dispatcher, if any."""
        return self._order_status_messages.get(_key(event_type))

    def whatsapp_template(self, message_type, language: Optional[str] = None) -> Optional[str]:
        """
        Get the WhatsApp content template SID for a message type.

        Returns:
            Template SID, or None when not provisioned for the language
        """
        templates = self._whatsapp_templates.get(_key(message_type), {})
        template_id = templates.get(language or self.default_language)
        return template_id or None

    def with_whatsapp_templates(self, overrides: Mapping[str, Mapping[str, str]]) -> 'MessageCatalog':
        """
        Return a copy with template SIDs merged in per message type and language.
        """
        merged = {key: dict(value) for key, value in self._whatsapp_templates.items()}
        for key, languages in overrides.items():
            merged.setdefault(key, {}).update(languages)

        return MessageCatalog(
            messages=self._messages,
            order_status_messages=self._order_status_messages,
            whatsapp_templates=merged,
            default_language=self.default_language
        )
