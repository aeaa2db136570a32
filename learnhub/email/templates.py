"""Email templates for LearnHub.

Each ``render_*`` function returns ``(html, plain_text)``. Interpolated
values are HTML-escaped in the HTML part.
"""

from datetime import datetime
from html import escape


# ==============================================================================
# Base Template
# ==============================================================================

BASE_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{title} - LearnHub</title>
  <style>
    @media only screen and (max-width: 620px) {{
      .content-table {{
        width: 100% !important;
      }}
      .content-padding {{
        padding: 24px 20px !important;
      }}
    }}
  </style>
</head>
<body style="margin: 0; padding: 0; background-color: #F8FAFC; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif;">
  <table role="presentation" width="100%" cellpadding="0" cellspacing="0" style="background-color: #F8FAFC;">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" width="600" cellpadding="0" cellspacing="0" style="background-color: #FFFFFF; border-radius: 12px; max-width: 600px;" class="content-table">
          <tr>
            <td style="padding: 32px 40px 24px; text-align: center; border-bottom: 1px solid #E5E7EB;">
              <h1 style="margin: 0; font-size: 28px; font-weight: 700; color: #4F46E5;">LearnHub</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 40px;" class="content-padding">
              {content}
            </td>
          </tr>
          <tr>
            <td style="padding: 24px 40px; background-color: #F9FAFB; border-top: 1px solid #E5E7EB; border-radius: 0 0 12px 12px;">
              <p style="margin: 0; font-size: 12px; color: #6B7280; text-align: center; line-height: 1.6;">
                &copy; {year} LearnHub.<br>
                This email was sent automatically, please do not reply.
              </p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""

PLAIN_TEXT_FOOTER = """
---
© {year} LearnHub.
This email was sent automatically, please do not reply.
"""


def _wrap(title: str, content: str) -> str:
    return BASE_TEMPLATE.format(title=title, content=content, year=datetime.now().year)


# ==============================================================================
# Template: Certificate Issued
# ==============================================================================

CERTIFICATE_ISSUED_CONTENT = """
<h1 style="margin: 0 0 16px; font-size: 24px; font-weight: 600; color: #111827;">
  Congratulations, {user_name}!
</h1>

<p style="margin: 0 0 24px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  You completed <strong style="color: #111827;">{course_title}</strong>
  and your certificate of completion is ready.
</p>

<div style="background-color: #EEF2FF; border: 2px solid #4F46E5; border-radius: 12px; padding: 24px; text-align: center; margin: 24px 0;">
  <p style="margin: 0 0 8px; font-size: 14px; color: #4F46E5; font-weight: 500;">
    Certificate number
  </p>
  <p style="margin: 0; font-size: 22px; font-weight: 700; color: #312E81; letter-spacing: 2px; font-family: 'Courier New', Courier, monospace;">
    {certificate_no}
  </p>
  <p style="margin: 12px 0 0; font-size: 14px; color: #4B5563;">
    Grade: <strong>{grade}</strong>
  </p>
</div>

<p style="margin: 24px 0 0; font-size: 14px; color: #6B7280; line-height: 1.6;">
  Anyone can confirm this certificate at
  <a href="{verify_url}" style="color: #4F46E5;">{verify_url}</a>.
</p>
"""


def render_certificate_issued(
    user_name: str,
    course_title: str,
    certificate_no: str,
    grade: str,
    verify_url: str,
) -> tuple[str, str]:
    """Render the certificate issued email.

    Args:
        user_name: Holder's display name
        course_title: Completed course
        certificate_no: Public certificate number
        grade: Formatted grade, e.g. "92.50"
        verify_url: Public verification link

    Returns:
        Tuple of (html_content, plain_text_content)
    """
    content = CERTIFICATE_ISSUED_CONTENT.format(
        user_name=escape(user_name),
        course_title=escape(course_title),
        certificate_no=escape(certificate_no),
        grade=escape(grade),
        verify_url=escape(verify_url, quote=True),
    )
    html = _wrap("Your certificate", content)

    plain_text = f"""
Congratulations, {user_name}!

You completed {course_title} and your certificate of completion is ready.

Certificate number: {certificate_no}
Grade: {grade}

Anyone can confirm this certificate at {verify_url}
{PLAIN_TEXT_FOOTER.format(year=datetime.now().year)}
"""
    return html, plain_text.strip()


# ==============================================================================
# Template: Course Completed
# ==============================================================================

COURSE_COMPLETED_CONTENT = """
<h1 style="margin: 0 0 16px; font-size: 24px; font-weight: 600; color: #111827;">
  Course completed
</h1>

<p style="margin: 0 0 24px; font-size: 16px; color: #4B5563; line-height: 1.6;">
  Well done, <strong style="color: #111827;">{user_name}</strong>! You finished every
  lesson of <strong style="color: #111827;">{course_title}</strong>.
</p>

<p style="margin: 0; font-size: 14px; color: #6B7280; line-height: 1.6;">
  Your certificate is being issued and will arrive in a separate email.
</p>
"""


def render_course_completed(user_name: str, course_title: str) -> tuple[str, str]:
    """Render the course completed email."""
    content = COURSE_COMPLETED_CONTENT.format(
        user_name=escape(user_name), course_title=escape(course_title)
    )
    html = _wrap("Course completed", content)

    plain_text = f"""
Well done, {user_name}! You finished every lesson of {course_title}.

Your certificate is being issued and will arrive in a separate email.
{PLAIN_TEXT_FOOTER.format(year=datetime.now().year)}
"""
    return html, plain_text.strip()
