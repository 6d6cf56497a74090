"""
邮件模板解析与渲染

查找顺序：email_templates 表（is_active） → 内置默认模板 → TemplateNotFoundError。
占位符 {{key}} 按纯文本替换，不支持条件或循环语法。
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, Any, Mapping, Optional

from markupsafe import escape

from ..database.connection import DatabaseManager
from ..database.repositories import EmailTemplateRepository
from .exceptions import TemplateNotFoundError


logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}]+?)\s*\}\}")


@dataclass(frozen=True)
class Template:
    """邮件模板"""
    name: str
    subject: str
    html_body: str
    text_body: Optional[str] = None


@dataclass(frozen=True)
class RenderedMessage:
    """渲染后的邮件内容"""
    subject: str
    html_body: str
    text_body: Optional[str] = None


def render_placeholders(template_str: str, data: Mapping[str, Any], html: bool = False) -> str:
    """
    替换模板中的 {{key}} 占位符

    Args:
        template_str: 模板字符串
        data: 模板数据，缺失的键和None值替换为空字符串
        html: 是否对替换值做HTML转义

    Returns:
        str: 渲染后的内容
    """
    if not template_str:
        return ""

    def substitute(match: "re.Match[str]") -> str:
        value = data.get(match.group(1))
        if value is None:
            return ""
        if isinstance(value, bool):
            value = "true" if value else "false"
        return str(escape(value)) if html else str(value)

    # re.sub 不会重新扫描替换进来的值，数据中的 {{...}} 不会被再次解析
    return PLACEHOLDER_PATTERN.sub(substitute, template_str)


DEFAULT_TEMPLATES: Dict[str, Template] = {
    "payment_success": Template(
        name="payment_success",
        subject="Pago Exitoso - {{planName}}",
        html_body="""
<h2>¡Pago Procesado Exitosamente!</h2>
<p>Hola {{userName}},</p>
<p>Tu pago por <strong>{{planName}}</strong> ha sido procesado exitosamente.</p>
<p><strong>Detalles del pago:</strong></p>
<ul>
  <li>Monto: {{amount}} {{currency}}</li>
  <li>Fecha: {{paymentDate}}</li>
  <li>Método: {{paymentMethod}}</li>
  <li>ID de transacción: {{transactionId}}</li>
</ul>
<p>Tu suscripción está activa y puedes disfrutar de todos los beneficios.</p>
<p>¡Gracias por confiar en Café Colombia!</p>
""",
        text_body=(
            "Tu pago por {{planName}} ha sido procesado exitosamente. "
            "Monto: {{amount}} {{currency}}. Fecha: {{paymentDate}}."
        ),
    ),
    "payment_failed": Template(
        name="payment_failed",
        subject="Error en el Pago - {{planName}}",
        html_body="""
<h2>Error en el Procesamiento del Pago</h2>
<p>Hola {{userName}},</p>
<p>Hemos tenido un problema procesando tu pago para <strong>{{planName}}</strong>.</p>
<p><strong>Detalles:</strong></p>
<ul>
  <li>Monto: {{amount}} {{currency}}</li>
  <li>Fecha del intento: {{paymentDate}}</li>
  <li>Razón: {{failureReason}}</li>
</ul>
<p>Por favor, verifica tu método de pago e intenta nuevamente.</p>
<p>Si el problema persiste, contáctanos para asistencia.</p>
""",
        text_body=(
            "Error procesando tu pago para {{planName}}. Razón: {{failureReason}}. "
            "Por favor intenta nuevamente."
        ),
    ),
    "subscription_renewal": Template(
        name="subscription_renewal",
        subject="Suscripción Renovada - {{planName}}",
        html_body="""
<h2>Suscripción Renovada Exitosamente</h2>
<p>Hola {{userName}},</p>
<p>Tu suscripción a <strong>{{planName}}</strong> ha sido renovada exitosamente.</p>
<p><strong>Detalles de la renovación:</strong></p>
<ul>
  <li>Plan: {{planName}}</li>
  <li>Próxima renovación: {{nextRenewalDate}}</li>
  <li>Monto: {{amount}} {{currency}}</li>
</ul>
<p>Continúa disfrutando de todos los beneficios de tu suscripción.</p>
""",
        text_body=(
            "Tu suscripción a {{planName}} ha sido renovada. "
            "Próxima renovación: {{nextRenewalDate}}."
        ),
    ),
    "subscription_expiry_warning": Template(
        name="subscription_expiry_warning",
        subject="Tu Suscripción Expira Pronto - {{planName}}",
        html_body="""
<h2>Tu Suscripción Expira Pronto</h2>
<p>Hola {{userName}},</p>
<p>Tu suscripción a <strong>{{planName}}</strong> expirará el {{expiryDate}}.</p>
<p>Para continuar disfrutando de todos los beneficios, asegúrate de que tu método de pago esté actualizado.</p>
<p>Si tienes alguna pregunta, no dudes en contactarnos.</p>
""",
        text_body=(
            "Tu suscripción a {{planName}} expirará el {{expiryDate}}. "
            "Asegúrate de que tu método de pago esté actualizado."
        ),
    ),
    "welcome": Template(
        name="welcome",
        subject="Bienvenido a Café Colombia",
        html_body="""
<h2>¡Bienvenido a Café Colombia!</h2>
<p>Hola {{userName}},</p>
<p>¡Gracias por unirte a nuestra comunidad de amantes del café!</p>
<p>Estamos emocionados de tenerte con nosotros y esperamos que disfrutes de la mejor experiencia de café colombiano.</p>
<p>Si tienes alguna pregunta, nuestro equipo está aquí para ayudarte.</p>
<p>¡Bienvenido a bordo!</p>
""",
        text_body="¡Bienvenido a Café Colombia! Gracias por unirte a nuestra comunidad.",
    ),
}


class TemplateResolver:
    """模板解析器"""

    def __init__(self, db: DatabaseManager, defaults: Optional[Dict[str, Template]] = None):
        self._db = db
        self._defaults = dict(DEFAULT_TEMPLATES if defaults is None else defaults)

    async def resolve(self, name: str) -> Template:
        """
        解析模板

        Args:
            name: 模板名称

        Returns:
            Template: 模板

        Raises:
            TemplateNotFoundError: 数据库和内置模板中都不存在
        """
        stored = await self._load_stored(name)
        if stored is not None:
            return stored

        default = self._defaults.get(name)
        if default is not None:
            return default

        raise TemplateNotFoundError(name)

    async def _load_stored(self, name: str) -> Optional[Template]:
        # 读取失败时退回内置模板
        try:
            async with self._db.get_async_session() as session:
                row = await EmailTemplateRepository(session).get_active(name)
        except Exception as e:
            logger.warning(f"读取邮件模板失败: {name}, 错误: {e}")
            return None

        if row is None:
            return None

        return Template(
            name=row.name,
            subject=row.subject,
            html_body=row.html_content,
            text_body=row.text_content,
        )

    @staticmethod
    def render(template: Template, data: Mapping[str, Any]) -> RenderedMessage:
        """用数据渲染模板，HTML正文中的替换值会被转义"""
        return RenderedMessage(
            subject=render_placeholders(template.subject, data),
            html_body=render_placeholders(template.html_body, data, html=True),
            text_body=(
                render_placeholders(template.text_body, data)
                if template.text_body else None
            ),
        )
