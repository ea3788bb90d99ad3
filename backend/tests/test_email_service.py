import re

from app.core.constants import PASSWORD_REGEX
from app.services.email_service import generate_certification_code, generate_password


def test_generated_password_satisfies_policy():
    for _ in range(50):
        assert re.match(PASSWORD_REGEX, generate_password())


def test_certification_code_is_six_digits():
    code = generate_certification_code()
    assert len(code) == 6
    assert code.isdigit()


async def test_recording_double_captures_certification_mail(email_service):
    code = await email_service.send_certification_email("a@x.com")

    to, subject, body = email_service.sent[0]
    assert to == "a@x.com"
    assert "인증" in subject
    assert code in body
