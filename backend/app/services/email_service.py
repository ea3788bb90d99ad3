import logging
import re
import secrets
import smtplib
import string
from email.mime.text import MIMEText

from starlette.concurrency import run_in_threadpool

from ..core.config import settings
from ..core.constants import CERTIFICATION_CODE_LENGTH, NEW_PASSWORD_LENGTH, PASSWORD_REGEX

logger = logging.getLogger(__name__)


def generate_certification_code() -> str:
    return "".join(secrets.choice(string.digits) for _ in range(CERTIFICATION_CODE_LENGTH))


def generate_password() -> str:
    """비밀번호 정책(영문+숫자 8~20자)을 만족하는 임시 비밀번호"""
    alphabet = string.ascii_letters + string.digits
    while True:
        password = "".join(secrets.choice(alphabet) for _ in range(NEW_PASSWORD_LENGTH))
        if re.match(PASSWORD_REGEX, password):
            return password


class EmailService:
    """SMTP 메일 발송"""

    def __init__(
        self,
        host: str = None,
        port: int = None,
        username: str = None,
        password: str = None,
        sender: str = None
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = username or settings.SMTP_USERNAME
        self.password = password or settings.SMTP_PASSWORD
        self.sender = sender or settings.MAIL_SENDER or self.username

    async def send_certification_email(self, email: str) -> str:
        code = generate_certification_code()
        await self.send(
            email,
            "[MOGU] 이메일 인증 코드",
            f"인증 코드: {code}\n회원가입 화면에 인증 코드를 입력해 주세요."
        )
        return code

    async def send_new_password_email(self, email: str) -> str:
        new_password = generate_password()
        await self.send(
            email,
            "[MOGU] 임시 비밀번호 안내",
            f"임시 비밀번호: {new_password}\n로그인 후 비밀번호를 변경해 주세요."
        )
        return new_password

    async def send(self, to: str, subject: str, body: str) -> None:
        # smtplib 은 블로킹이므로 스레드풀에서 실행
        await run_in_threadpool(self._send_sync, to, subject, body)
        logger.info(f"메일 발송 완료: subject={subject}")

    def _send_sync(self, to: str, subject: str, body: str) -> None:
        msg = MIMEText(body, _charset="utf-8")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as server:
                server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except smtplib.SMTPException as e:
            logger.error(f"SMTP error: {str(e)}")
            raise
