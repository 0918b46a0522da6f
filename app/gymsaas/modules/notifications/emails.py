"""Subject, text and HTML for the daily subscription emails."""
from __future__ import annotations

from markupsafe import escape

_WRAP = '<div style="font-family: Arial, sans-serif; line-height: 1.6; max-width: 600px; margin: 0 auto;">{}</div>'


def _days(n: int) -> str:
    return f"{n} day{'s' if n > 1 else ''}"


def owner_reminder(owner_name: str, days_left: int, plan_name: str) -> tuple[str, str, str]:
    """days_left == 0 renders the expiry notice."""
    if days_left == 0:
        subject = "Your Gym Subscription Has Expired"
        text = (
            f"Dear {owner_name},\n\nYour subscription to {plan_name} has expired. "
            "Please renew your subscription to continue using our services.\n\nThank you."
        )
        body = (
            f"<p>Your subscription to <strong>{escape(plan_name)}</strong> has expired. "
            "Please renew your subscription to continue using our services.</p>"
        )
    else:
        subject = f"Your Gym Subscription Expires in {days_left} Day{'s' if days_left > 1 else ''}"
        text = (
            f"Dear {owner_name},\n\nThis is a reminder that your subscription to {plan_name} "
            f"will expire in {_days(days_left)}.\n\n"
            "Please renew your subscription to avoid any interruption in service.\n\nThank you."
        )
        body = (
            f"<p>This is a reminder that your subscription to <strong>{escape(plan_name)}</strong> "
            f"will expire in <strong>{_days(days_left)}</strong>.</p>"
            "<p>Please renew your subscription to avoid any interruption in service.</p>"
        )
    html = _WRAP.format(
        f'<h2 style="color: #333;">{escape(subject)}</h2><p>Dear {escape(owner_name)},</p>{body}<p>Thank you.</p>'
    )
    return subject, text, html


def member_reminder(member_name: str, days_left: int) -> tuple[str, str, str]:
    if days_left == 0:
        subject = "Your Gym Membership Has Expired"
        text = (
            f"Dear {member_name},\n\nYour gym membership has expired. "
            "Please renew your membership to continue accessing the gym.\n\nThank you."
        )
        body = "<p>Your gym membership has expired. Please renew your membership to continue accessing the gym.</p>"
    else:
        subject = f"Your Gym Membership Expires in {days_left} Day{'s' if days_left > 1 else ''}"
        text = (
            f"Dear {member_name},\n\nThis is a reminder that your gym membership will expire in {_days(days_left)}.\n\n"
            "Please renew your membership to avoid any interruption in service.\n\nThank you."
        )
        body = (
            f"<p>This is a reminder that your gym membership will expire in <strong>{_days(days_left)}</strong>.</p>"
            "<p>Please renew your membership to avoid any interruption in service.</p>"
        )
    html = _WRAP.format(
        f'<h2 style="color: #333;">{escape(subject)}</h2><p>Dear {escape(member_name)},</p>{body}<p>Thank you.</p>'
    )
    return subject, text, html


def _plural(n: int, word: str) -> str:
    return f"{n} {word}{'s' if n != 1 else ''}"


def admin_summary(expired_owners: list[dict]) -> tuple[str, str, str]:
    """expired_owners: dicts with name, email and plan_name."""
    n = len(expired_owners)
    subject = f"Daily Subscription Expiration Report - {_plural(n, 'Owner')} Expired"
    verb = "s have" if n != 1 else " has"
    lines = "\n".join(f"- {o['name']} ({o['email']}) - Plan: {o['plan_name']}" for o in expired_owners)
    text = (
        f"Daily Subscription Expiration Report\n\n{n} owner subscription{verb} expired today:\n\n{lines}\n\n"
        "Please follow up with these owners to renew their subscriptions."
    )
    items = "".join(
        f"<li><strong>{escape(o['name'])}</strong> ({escape(o['email'])}) - Plan: {escape(o['plan_name'])}</li>"
        for o in expired_owners
    )
    html = _WRAP.format(
        f'<h2 style="color: #333;">{escape(subject)}</h2>'
        f"<p><strong>{n}</strong> owner subscription{verb} expired today:</p><ul>{items}</ul>"
        "<p>Please follow up with these owners to renew their subscriptions.</p>"
    )
    return subject, text, html


def owner_summary(expired_members: list[dict]) -> tuple[str, str, str]:
    """expired_members: dicts with name and email."""
    n = len(expired_members)
    subject = f"Daily Membership Expiration Report - {_plural(n, 'Member')} Expired"
    verb = "s have" if n != 1 else " has"
    lines = "\n".join(f"- {m['name']} ({m['email']})" for m in expired_members)
    text = (
        f"Daily Membership Expiration Report\n\n{n} member subscription{verb} expired today:\n\n{lines}\n\n"
        "Please follow up with these members to renew their memberships."
    )
    items = "".join(f"<li><strong>{escape(m['name'])}</strong> ({escape(m['email'])})</li>" for m in expired_members)
    html = _WRAP.format(
        f'<h2 style="color: #333;">{escape(subject)}</h2>'
        f"<p><strong>{n}</strong> member subscription{verb} expired today:</p><ul>{items}</ul>"
        "<p>Please follow up with these members to renew their memberships.</p>"
    )
    return subject, text, html
