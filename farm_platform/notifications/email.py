"""
邮件传输层

EmailTransport 持有唯一的SMTP客户端句柄，首次使用时根据 system_settings 中的
email 分类懒加载构建。句柄构建后不可变，重新初始化时整体替换，正在进行的发送
继续使用它开始时拿到的句柄。
"""

import asyncio
import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional

from .exceptions import TransportError
from .gate import ConfigurationGate, EmailCredentials
from .types import EmailMessage, SendResult


logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465
NOT_CONFIGURED = "email transport not configured"


class SmtpClient:
    """不可变的SMTP客户端，每次发送建立一个连接"""

    def __init__(self, credentials: EmailCredentials, timeout: float):
        self.credentials = credentials
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        """建立并认证SMTP连接"""
        creds = self.credentials
        implicit_tls = creds.smtp_secure and creds.smtp_port == IMPLICIT_TLS_PORT

        if implicit_tls:
            context = ssl.create_default_context()
            server = smtplib.SMTP_SSL(
                creds.smtp_host,
                creds.smtp_port,
                timeout=self.timeout,
                context=context
            )
        else:
            server = smtplib.SMTP(
                creds.smtp_host,
                creds.smtp_port,
                timeout=self.timeout
            )

        try:
            if creds.smtp_secure and not implicit_tls:
                server.starttls(context=ssl.create_default_context())
            server.login(creds.smtp_user, creds.smtp_password)
        except Exception:
            server.close()
            raise
        return server

    @staticmethod
    def _disconnect(server: smtplib.SMTP) -> None:
        try:
            server.quit()
        except (smtplib.SMTPException, OSError):
            server.close()

    def probe(self) -> None:
        """连接测试：建立连接、登录后断开"""
        try:
            server = self._connect()
        except (smtplib.SMTPException, OSError) as e:
            raise TransportError(str(e) or e.__class__.__name__) from e
        self._disconnect(server)

    def send(self, message: MIMEMultipart, recipient: str) -> None:
        """同步发送邮件"""
        try:
            server = self._connect()
            try:
                server.send_message(message, to_addrs=[recipient])
            finally:
                self._disconnect(server)
        except (smtplib.SMTPException, OSError) as e:
            raise TransportError(str(e) or e.__class__.__name__) from e

    def create_message(self, email: EmailMessage) -> MIMEMultipart:
        """
        创建邮件消息

        Args:
            email: 邮件内容

        Returns:
            MIMEMultipart: 邮件消息对象
        """
        message = MIMEMultipart("alternative")

        # 主题中的换行会破坏邮件头
        message["Subject"] = " ".join(email.subject.splitlines()).strip()
        message["From"] = formataddr((self.credentials.from_name, self.credentials.sender_address))
        message["To"] = email.to
        for name, value in email.headers.items():
            message[name] = value

        # 纯文本在前，HTML在后，客户端优先显示最后一个可识别的部分
        if email.text:
            message.attach(MIMEText(email.text, "plain", "utf-8"))
        message.attach(MIMEText(email.html, "html", "utf-8"))

        return message


class EmailTransport:
    """邮件传输"""

    def __init__(
        self,
        gate: ConfigurationGate,
        timeout: float = 30.0,
        call_timeout: Optional[float] = None
    ):
        self._gate = gate
        self._timeout = timeout
        # socket超时只限制单次读写，整体再加一层上限
        self._call_timeout = call_timeout if call_timeout is not None else timeout + 5
        self._client: Optional[SmtpClient] = None
        self._initialized = False
        self._init_lock = asyncio.Lock()

    @property
    def configured(self) -> bool:
        """是否已构建SMTP客户端"""
        return self._client is not None

    async def initialize(self) -> None:
        """根据当前配置重新构建SMTP客户端，主机或用户名为空时保持未配置状态"""
        async with self._init_lock:
            await self._build_client()

    async def ensure_initialized(self) -> None:
        """只初始化一次，并发的首次调用只会构建一个客户端"""
        if self._initialized:
            return
        async with self._init_lock:
            if not self._initialized:
                await self._build_client()

    async def _build_client(self) -> None:
        credentials = await self._gate.get_email_credentials()
        if credentials is None:
            self._client = None
            logger.warning("邮件传输未配置，邮件将无法发送")
        else:
            self._client = SmtpClient(credentials, self._timeout)
            logger.info(
                f"邮件传输已初始化: {credentials.smtp_host}:{credentials.smtp_port} "
                f"(secure={credentials.smtp_secure})"
            )
        self._initialized = True

    async def _run(self, func, *args):
        """在线程池中执行阻塞的SMTP操作，并限制总耗时"""
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(
            loop.run_in_executor(None, func, *args),
            timeout=self._call_timeout
        )

    async def verify(self) -> bool:
        """
        测试邮件服务器连接

        Returns:
            bool: 连接是否成功
        """
        try:
            await self.ensure_initialized()
            client = self._client
            if client is None:
                logger.error(f"邮件服务器连接测试失败: {NOT_CONFIGURED}")
                return False

            await self._run(client.probe)
            logger.info("邮件服务器连接测试成功")
            return True

        except Exception as e:
            logger.error(f"邮件服务器连接测试失败: {e!r}")
            return False

    async def send(self, email: EmailMessage) -> SendResult:
        """
        发送邮件，只尝试一次

        Args:
            email: 邮件内容

        Returns:
            SendResult: 发送结果，失败时包含错误信息
        """
        try:
            await self.ensure_initialized()
            # 取一次引用，发送过程中重新初始化不影响本次发送
            client = self._client
            if client is None:
                return SendResult(False, NOT_CONFIGURED)

            message = client.create_message(email)
            await self._run(client.send, message, email.to)

            logger.info(f"邮件发送成功: {email.to}")
            return SendResult(True)

        except asyncio.TimeoutError:
            error = f"SMTP timed out after {self._call_timeout:g}s"
            logger.error(f"邮件发送失败: {email.to}, 错误: {error}")
            return SendResult(False, error)
        except Exception as e:
            error = str(e) or e.__class__.__name__
            logger.error(f"邮件发送失败: {email.to}, 错误: {error}")
            return SendResult(False, error)
