import html
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from core.eligibility.models import ScholarshipRecord
from core.scorer.models import PriorityTier


class ScholarshipInfo(BaseModel):
    id: str
    name: str
    provider: Optional[str] = None
    award_amount: Optional[float] = None
    days_until_deadline: Optional[int] = None


class MatchInfo(BaseModel):
    match_id: Optional[str] = None
    match_score: int  # rounded overall score
    priority_tier: PriorityTier


class MatchNotificationContent(BaseModel):
    student_id: str
    student_name: Optional[str] = None
    scholarship: ScholarshipInfo
    match: MatchInfo
    scholarship_url: str
    unsubscribe_url: str


def days_until(deadline: Optional[datetime], now: Optional[datetime] = None) -> Optional[int]:
    """Whole days from now until the deadline (negative once past)."""
    if deadline is None:
        return None
    now = now or datetime.now(timezone.utc)
    # SQLite hands back naive timestamps; they are stored as UTC
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return (deadline - now).days


class NotificationMessageBuilder:
    @staticmethod
    def format_award(amount: Optional[float]) -> str:
        if amount is None:
            return "Varies"
        return f"${amount:,.0f}"

    @staticmethod
    def build_subject(content: MatchNotificationContent) -> str:
        label = 'Must-Apply' if content.match.priority_tier == PriorityTier.MUST_APPLY else 'High-Match'
        return f"New {label} Scholarship: {content.scholarship.name}"

    @staticmethod
    def build_notification_content(
        student_id: str,
        student_name: Optional[str],
        scholarship: ScholarshipRecord,
        match_score: float,
        priority_tier: PriorityTier,
        base_url: str,
        match_id: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> MatchNotificationContent:
        """Build notification content from a scored match."""
        base_url = base_url.rstrip('/')
        return MatchNotificationContent(
            student_id=student_id,
            student_name=student_name,
            scholarship=ScholarshipInfo(
                id=scholarship.id,
                name=scholarship.name,
                provider=scholarship.provider,
                award_amount=scholarship.award_amount,
                days_until_deadline=days_until(scholarship.deadline, now),
            ),
            match=MatchInfo(
                match_id=match_id,
                match_score=round(match_score),
                priority_tier=priority_tier,
            ),
            scholarship_url=f"{base_url}/scholarships/{scholarship.id}",
            unsubscribe_url=f"{base_url}/settings/notifications?unsubscribe=true",
        )

    @staticmethod
    def build_text_body(content: MatchNotificationContent) -> str:
        greeting = f"Hi {content.student_name}," if content.student_name else "Hi,"
        lines = [
            greeting,
            "",
            f"We found a scholarship that matches your profile: {content.scholarship.name}",
            "",
            f"Match score: {content.match.match_score}%",
            f"Award: {NotificationMessageBuilder.format_award(content.scholarship.award_amount)}",
        ]
        if content.scholarship.days_until_deadline is not None:
            lines.append(f"Deadline: {content.scholarship.days_until_deadline} days left")
        lines += [
            "",
            f"View details: {content.scholarship_url}",
            "",
            "---",
            f"Unsubscribe: {content.unsubscribe_url}",
        ]
        return "\n".join(lines)

    @staticmethod
    def build_html_body(content: MatchNotificationContent) -> str:
        subject = html.escape(NotificationMessageBuilder.build_subject(content))
        name = html.escape(content.scholarship.name)
        award = html.escape(NotificationMessageBuilder.format_award(content.scholarship.award_amount))
        url = html.escape(content.scholarship_url, quote=True)
        unsubscribe = html.escape(content.unsubscribe_url, quote=True)

        deadline_row = ""
        if content.scholarship.days_until_deadline is not None:
            deadline_row = (
                f'<div class="detail"><strong>Deadline:</strong> '
                f'{content.scholarship.days_until_deadline} days left</div>'
            )

        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <style>
        body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; }}
        .header {{ background: #1e3a8a; color: white; padding: 20px; border-radius: 8px 8px 0 0; }}
        .card {{ background: white; padding: 15px; margin: 10px 0; border-radius: 8px; border-left: 4px solid #1e3a8a; }}
        .detail {{ margin: 5px 0; font-size: 14px; }}
        .footer {{ text-align: center; padding: 15px; color: #666; font-size: 12px; }}
    </style>
</head>
<body>
    <div class="header"><h1>{subject}</h1></div>
    <div class="card">
        <div class="detail"><strong>{name}</strong></div>
        <div class="detail"><strong>Match:</strong> {content.match.match_score}%</div>
        <div class="detail"><strong>Award:</strong> {award}</div>
        {deadline_row}
        <div class="detail"><a href="{url}">View scholarship</a></div>
    </div>
    <div class="footer"><a href="{unsubscribe}">Unsubscribe</a></div>
</body>
</html>"""
