"""Built-in email templates.

Each template has a subject, an HTML body and a plain text body, all Jinja2.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class EmailTemplate:
    subject: str
    html_body: str
    text_body: str


VERIFICATION = EmailTemplate(
    subject="Verify your {{ app_name }} account",
    html_body="""\
<p>Hi {{ name or "there" }},</p>
<p>Welcome to <b>{{ app_name }}</b>! Please verify your email by clicking the button below:</p>
<p><a href="{{ verify_url }}" style="padding:10px 16px;background:#2563eb;color:#fff;border-radius:6px;text-decoration:none">Verify Email</a></p>
<p>This link expires in {{ expires_in_hours }} hours.</p>
<p>If you didn't sign up, you can ignore this message.</p>
<p>The {{ app_name }} Team</p>
""",
    text_body="""\
Hi {{ name or "there" }},

Welcome to {{ app_name }}! Verify your email by opening this link:
{{ verify_url }}

This link expires in {{ expires_in_hours }} hours.
If you didn't sign up, you can ignore this message.
""",
)

PASSWORD_RESET = EmailTemplate(
    subject="Reset your {{ app_name }} password",
    html_body="""\
<h2>Hello {{ name or "there" }},</h2>
<p>We received a request to reset your password. Click the button below to set a new one:</p>
<p><a href="{{ reset_url }}" style="display:inline-block;padding:10px 16px;background:#007bff;color:white;text-decoration:none;border-radius:4px;">Reset Password</a></p>
<p>This link will expire in {{ expires_in_minutes }} minutes.</p>
<p>If you didn't request this, you can safely ignore this email.</p>
<p>The {{ app_name }} Team</p>
""",
    text_body="""\
Hello {{ name or "there" }},

We received a request to reset your password. Set a new one here:
{{ reset_url }}

This link will expire in {{ expires_in_minutes }} minutes.
If you didn't request this, you can safely ignore this email.
""",
)
