"""
Review Notification Emails

Templates for the emails a school receives after an admin reviews one of
its submissions:
- Evidence approved / evidence feedback (rejected)
- Audit approved / audit feedback (rejected)

Rejections always carry reviewer feedback; when the reviewer left no notes
the configured default feedback is used.
"""

import html
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from moderation.models import SubmissionKind, SubmissionStatus

from .email_provider import DeliveryResult, send_email

logger = logging.getLogger(__name__)


class ReviewEmailTemplate(str, Enum):
    """Review email templates."""
    EVIDENCE_APPROVED = "evidence_approved"
    EVIDENCE_REJECTED = "evidence_rejected"
    AUDIT_APPROVED = "audit_approved"
    AUDIT_REJECTED = "audit_rejected"

    @classmethod
    def for_review(cls, kind: SubmissionKind, status: SubmissionStatus) -> "ReviewEmailTemplate":
        if status not in (SubmissionStatus.APPROVED, SubmissionStatus.REJECTED):
            raise ValueError(f"No review email for status {status.value}")
        return cls(f"{kind.value}_{status.value}")


@dataclass
class RenderedEmail:
    """Subject and bodies of a review email."""
    template: ReviewEmailTemplate
    subject: str
    body_html: str
    body_text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template": self.template.value,
            "subject": self.subject,
            "body_html": self.body_html,
            "body_text": self.body_text,
        }


_APPROVED_COLOURS = ("#02BBB4", "#019ADE")
_FEEDBACK_COLOURS = ("#FFC557", "#FF595A")


def _layout(heading: str, colours, greeting: str, paragraphs, button_label: str, url: str,
            feedback: Optional[str] = None) -> str:
    body = "".join(
        f'<p style="color: #666; line-height: 1.6;">{p}</p>' for p in paragraphs
    )
    feedback_block = ""
    if feedback is not None:
        feedback_block = (
            f'<div style="background: white; padding: 20px; border-left: 4px solid {colours[0]}; margin: 20px 0;">'
            '<h3 style="color: #0B3D5D; margin-top: 0;">Reviewer Feedback:</h3>'
            f'<p style="color: #666; line-height: 1.6;">{html.escape(feedback)}</p>'
            '</div>'
        )
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
    <div style="background: linear-gradient(135deg, {colours[0]} 0%, {colours[1]} 100%); padding: 40px 20px; text-align: center;">
        <h1 style="color: white; margin: 0; font-size: 28px;">{heading}</h1>
    </div>
    <div style="padding: 40px 20px; background: #f9f9f9;">
        <h2 style="color: #0B3D5D;">{greeting}</h2>
        {body}
        {feedback_block}
        <div style="text-align: center; margin: 30px 0;">
            <a href="{url}" style="background: {colours[0]}; color: white; padding: 15px 30px; text-decoration: none; border-radius: 8px; font-weight: bold;">{button_label}</a>
        </div>
    </div>
</div>
    """.strip()


def render_review_email(
    kind: SubmissionKind,
    status: SubmissionStatus,
    school_name: str,
    title: Optional[str] = None,
    review_notes: Optional[str] = None,
    frontend_url: str = "https://plasticclever.org",
    default_feedback: str = "Please review and resubmit",
) -> RenderedEmail:
    """
    Render the email for a reviewed submission.

    Args:
        kind: Evidence or audit
        status: APPROVED or REJECTED
        school_name: Name of the submitting school
        title: Evidence title (evidence only)
        review_notes: Reviewer notes; rejections fall back to default_feedback
        frontend_url: Link target for the call to action

    Returns:
        RenderedEmail
    """
    template = ReviewEmailTemplate.for_review(kind, status)
    school = html.escape(school_name)
    label = html.escape(title or "your evidence")

    if template == ReviewEmailTemplate.EVIDENCE_APPROVED:
        subject = f"Evidence Approved - {title or school_name}"
        body_html = _layout(
            "Evidence Approved!", _APPROVED_COLOURS, f"Great work, {school}!",
            [
                f'Your evidence submission "<strong>{label}</strong>" has been reviewed and approved by our team.',
                "This brings you one step closer to completing your current programme stage.",
            ],
            "View Your Progress", frontend_url,
        )
        body_text = (
            f"Great work, {school_name}!\n\n"
            f"Your evidence submission \"{title or ''}\" has been reviewed and approved by our team.\n\n"
            f"View your progress: {frontend_url}"
        )
        return RenderedEmail(template, subject, body_html, body_text)

    if template == ReviewEmailTemplate.AUDIT_APPROVED:
        subject = f"Audit Approved - {school_name}"
        body_html = _layout(
            "Audit Approved!", _APPROVED_COLOURS, f"Congratulations, {school}!",
            ["Your plastic waste audit has been reviewed and approved by our team."],
            "View Your Progress", frontend_url,
        )
        body_text = (
            f"Congratulations, {school_name}!\n\n"
            "Your plastic waste audit has been reviewed and approved by our team.\n\n"
            f"View your progress: {frontend_url}"
        )
        return RenderedEmail(template, subject, body_html, body_text)

    feedback = (review_notes or "").strip() or default_feedback

    if template == ReviewEmailTemplate.EVIDENCE_REJECTED:
        subject = f"Evidence Feedback - {title or school_name}"
        body_html = _layout(
            "Evidence Feedback", _FEEDBACK_COLOURS, f"Feedback for {school}",
            [f'Your evidence submission "<strong>{label}</strong>" has been reviewed by our team.'],
            "Resubmit Evidence", frontend_url, feedback=feedback,
        )
        body_text = (
            f"Feedback for {school_name}\n\n"
            f"Your evidence submission \"{title or ''}\" has been reviewed by our team.\n\n"
            f"Reviewer feedback: {feedback}\n\n"
            f"Resubmit: {frontend_url}"
        )
        return RenderedEmail(template, subject, body_html, body_text)

    subject = f"Audit Feedback - {school_name}"
    body_html = _layout(
        "Audit Feedback", _FEEDBACK_COLOURS, f"Feedback for {school}",
        ["Your plastic waste audit has been reviewed by our team and needs some changes."],
        "Update Your Audit", frontend_url, feedback=feedback,
    )
    body_text = (
        f"Feedback for {school_name}\n\n"
        "Your plastic waste audit has been reviewed by our team and needs some changes.\n\n"
        f"Reviewer feedback: {feedback}\n\n"
        f"Update your audit: {frontend_url}"
    )
    return RenderedEmail(template, subject, body_html, body_text)


def send_review_email(
    recipient_email: str,
    rendered: RenderedEmail,
    metadata: Optional[Dict[str, Any]] = None,
) -> DeliveryResult:
    """Deliver a rendered review email through the configured provider."""
    result = send_email(
        to=recipient_email,
        subject=rendered.subject,
        body_html=rendered.body_html,
        body_text=rendered.body_text,
        tags=["review", rendered.template.value],
        metadata=metadata or {},
    )
    if not result.success:
        logger.warning(
            f"Review email {rendered.template.value} to {recipient_email} failed: {result.error_message}"
        )
    return result
