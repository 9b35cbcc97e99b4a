import re
from datetime import datetime
from html import escape
from typing import Optional
from urllib.parse import quote

from utils.pdf import format_sign_date


def whatsapp_url(phone: Optional[str], message: str) -> Optional[str]:
    """wa.me deep link; local Israeli numbers (leading 0) get the 972 prefix."""
    digits = re.sub(r"[^0-9]", "", phone or "")
    if not digits:
        return None
    if digits.startswith("0"):
        digits = "972" + digits[1:]
    return f"https://wa.me/{digits}?text={quote(message)}"


def invite_message(event_title: str, invite_url: str, customer_name: str) -> str:
    return (
        f"שלום {customer_name},\n\n"
        f"הוזמנת לחתום על מסמך: {event_title}\n\n"
        f"לחץ על הקישור הבא לצפייה וחתימה:\n{invite_url}\n\n"
        "תודה!"
    )


def signed_message(event_title: str, customer_name: str, signed_at: datetime) -> str:
    return (
        "שלום,\n"
        f"מצורף טופס חתום עבור: {event_title}\n"
        f"שם: {customer_name}\n"
        f"תאריך חתימה: {format_sign_date(signed_at)}"
    )


def signed_document_email(event_title: str, customer_name: str, signed_at: datetime) -> str:
    return f"""
        <div dir="rtl" style="font-family: Arial, sans-serif;">
          <h2>מסמך חתום</h2>
          <p>שלום,</p>
          <p>מצורף המסמך החתום עבור: <strong>{escape(event_title)}</strong></p>
          <p>שם הלקוח: {escape(customer_name)}</p>
          <p>תאריך חתימה: {format_sign_date(signed_at)}</p>
          <br>
          <p>בברכה</p>
        </div>
    """
