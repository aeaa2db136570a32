"""Tests for email templates."""

from learnhub.email.templates import render_certificate_issued, render_course_completed


class TestCertificateIssuedTemplate:
    """Tests for render_certificate_issued."""

    def _render(self, **overrides) -> tuple[str, str]:
        values = {
            "user_name": "Ana Souza",
            "course_title": "Clinical Pharmacy",
            "certificate_no": "CERT-LZ4K1M2QX9-7GQ2ZD",
            "grade": "92.50",
            "verify_url": (
                "https://learnhub.example/certificates/verify/CERT-LZ4K1M2QX9-7GQ2ZD"
            ),
        }
        values.update(overrides)
        return render_certificate_issued(**values)

    def test_contains_certificate_details(self) -> None:
        html, text = self._render()
        for part in (html, text):
            assert "Ana Souza" in part
            assert "Clinical Pharmacy" in part
            assert "CERT-LZ4K1M2QX9-7GQ2ZD" in part
            assert "92.50" in part

    def test_contains_verification_link(self) -> None:
        html, text = self._render()
        assert 'href="https://learnhub.example/certificates/verify/' in html
        assert "https://learnhub.example/certificates/verify/" in text

    def test_html_is_escaped(self) -> None:
        html, text = self._render(course_title="<script>alert(1)</script>")
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "<script>" in text

    def test_uses_base_layout(self) -> None:
        html, text = self._render()
        assert html.strip().startswith("<!DOCTYPE html>")
        assert "LearnHub" in html
        assert "please do not reply" in text


class TestCourseCompletedTemplate:
    def test_contains_course(self) -> None:
        html, text = render_course_completed("Ana", "Clinical Pharmacy")
        assert "Clinical Pharmacy" in html
        assert "Well done, Ana!" in text
