"""
HTML email templates for patient notifications
"""
from datetime import datetime, timezone
from html import escape
from typing import Tuple
from zoneinfo import ZoneInfo

from ..models.appointment import TEST_NAMES

FOOTER = """
        <div style="text-align: center; padding: 20px; color: #666; font-size: 12px;">
          <p>This is an automated email. Please do not reply to this message.</p>
        </div>"""


def format_slot(appointment_date: datetime, tz_name: str) -> Tuple[str, str]:
    """Stored UTC datetime -> ("12 Mar 2026", "10:30 AM") in the display timezone"""
    local = appointment_date.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz_name))
    return local.strftime("%d %b %Y"), local.strftime("%I:%M %p")


def _test_label(test_type: str) -> str:
    return TEST_NAMES.get(test_type, test_type)


def confirmation_email(
    name: str,
    test_type: str,
    appointment_date: datetime,
    amount: int,
    payment_id: str,
    contact_phone: str,
    contact_email: str,
    tz_name: str,
) -> Tuple[str, str]:
    """Subject and body sent once payment is verified"""
    date_str, time_str = format_slot(appointment_date, tz_name)
    html = f"""
      <div style="max-width: 600px; margin: 0 auto; font-family: Arial, sans-serif; color: #333;">
        <div style="background-color: #4CAF50; padding: 20px; text-align: center;">
          <h1 style="color: white; margin: 0;">Appointment Confirmation</h1>
        </div>

        <div style="padding: 20px; background-color: #f9f9f9; border-radius: 5px; margin-top: 20px;">
          <p style="font-size: 16px;">Dear <strong>{escape(name)}</strong>,</p>
          <p style="font-size: 16px;">Your appointment has been confirmed and payment has been received successfully.</p>

          <div style="background-color: white; padding: 20px; border-radius: 5px; margin: 20px 0;">
            <h2 style="color: #4CAF50; margin-top: 0;">Appointment Details</h2>
            <ul style="list-style: none; padding: 0;">
              <li style="margin: 10px 0;"><strong>Test Type:</strong> {escape(_test_label(test_type))}</li>
              <li style="margin: 10px 0;"><strong>Date:</strong> {date_str}</li>
              <li style="margin: 10px 0;"><strong>Time:</strong> {time_str}</li>
              <li style="margin: 10px 0;"><strong>Amount Paid:</strong> &#8377;{amount}</li>
              <li style="margin: 10px 0;"><strong>Payment ID:</strong> {escape(payment_id)}</li>
            </ul>
          </div>

          <div style="background-color: #fff3cd; padding: 20px; border-radius: 5px; margin: 20px 0;">
            <h2 style="color: #856404; margin-top: 0;">Important Instructions</h2>
            <ul style="list-style: none; padding: 0;">
              <li style="margin: 10px 0;">&#10003; Please arrive 15 minutes before your appointment time</li>
              <li style="margin: 10px 0;">&#10003; Bring any previous medical records related to this test</li>
              <li style="margin: 10px 0;">&#10003; Bring a valid ID proof</li>
              <li style="margin: 10px 0;">&#10003; Follow any specific preparation instructions for your test type</li>
            </ul>
          </div>

          <p style="font-size: 14px; color: #666;">If you need to cancel or reschedule, please contact us at least 24 hours before your appointment.</p>

          <div style="background-color: #e9ecef; padding: 20px; border-radius: 5px; margin-top: 20px;">
            <h2 style="color: #495057; margin-top: 0;">Contact Information</h2>
            <p style="margin: 5px 0;">Phone: {escape(contact_phone)}</p>
            <p style="margin: 5px 0;">Email: {escape(contact_email)}</p>
          </div>
        </div>
{FOOTER}
      </div>
    """
    return "Appointment Confirmation - Payment Received", html


def cancellation_email(name: str, test_type: str, appointment_date: datetime, tz_name: str) -> Tuple[str, str]:
    """Subject and body sent when an appointment is cancelled"""
    date_str, time_str = format_slot(appointment_date, tz_name)
    html = f"""
      <div style="max-width: 600px; margin: 0 auto; font-family: Arial, sans-serif; color: #333;">
        <div style="background-color: #dc3545; padding: 20px; text-align: center;">
          <h1 style="color: white; margin: 0;">Appointment Cancelled</h1>
        </div>

        <div style="padding: 20px; background-color: #f9f9f9; border-radius: 5px; margin-top: 20px;">
          <p style="font-size: 16px;">Dear <strong>{escape(name)}</strong>,</p>
          <p style="font-size: 16px;">Your appointment has been cancelled.</p>

          <div style="background-color: white; padding: 20px; border-radius: 5px; margin: 20px 0;">
            <h2 style="color: #dc3545; margin-top: 0;">Cancelled Appointment Details</h2>
            <ul style="list-style: none; padding: 0;">
              <li style="margin: 10px 0;"><strong>Test Type:</strong> {escape(_test_label(test_type))}</li>
              <li style="margin: 10px 0;"><strong>Date:</strong> {date_str}</li>
              <li style="margin: 10px 0;"><strong>Time:</strong> {time_str}</li>
            </ul>
          </div>

          <p style="font-size: 16px; text-align: center; margin-top: 20px;">
            If you wish to reschedule, please book a new appointment.
          </p>
        </div>
{FOOTER}
      </div>
    """
    return "Appointment Cancellation", html
