"""
Incoming WhatsApp message handling.

Each message is stored, the sender's ``whatsapp_users`` profile is fetched
(or created as a parent), a reply is generated from simple keyword rules and
sent back, and the reply is stored as an outgoing message.
"""

import logging
import re
import time
from datetime import date, datetime, timezone

from flask import current_app

from app import firestore_dao as dao
from app.firestore_models import WhatsAppMessage, WhatsAppUser
from app.services import attendance as attendance_service
from app.services.whatsapp_client import send_whatsapp_message
from app.utils import month_bounds

logger = logging.getLogger(__name__)

_GREETING_RE = re.compile(r'\b(hello|hi|hey|namaste)\b')
_LINK_RE = re.compile(r'^\s*link\s+(\S+)\s*$', re.IGNORECASE)

HELP_TEXT = ('You can ask about "attendance" or "fees", '
             'or send "LINK <roll number>" to connect your child.')


def extract_text(message):
    """Text body for text messages, a placeholder for media."""
    message_type = message.get('type', 'text')
    if message_type == 'text':
        return message.get('text', {}).get('body', '')
    if message_type == 'image':
        return '[Image received]'
    if message_type == 'audio':
        return '[Audio received]'
    return f'[{message_type} message]'


def get_or_create_user(phone_number):
    data = dao.get_whatsapp_user(phone_number)
    if data:
        return WhatsAppUser.from_dict(data)
    user = WhatsAppUser(phone_number=phone_number, created_at=datetime.now(timezone.utc))
    dao.create_whatsapp_user(phone_number, user.to_dict())
    logger.info('Created WhatsApp user %s', phone_number)
    return user


def link_user_to_student(phone_number, roll_number):
    """Link a phone number to a student. Returns the Student dict or None."""
    student = dao.get_student_by_roll_number(roll_number)
    if not student:
        return None
    name = f"{student.get('firstName', '')} {student.get('lastName', '')}".strip()
    dao.update_whatsapp_user(phone_number, {
        'studentId': student['id'],
        'name': name,
        'role': 'parent',
    })
    logger.info('Linked %s to student %s', phone_number, student['id'])
    return student


def _attendance_reply(user, today=None):
    if not user.student_id:
        return 'Please link your child first. Send "LINK <roll number>".'
    today = today or date.today()
    start, end = month_bounds(today.year, today.month)
    summary = attendance_service.get_student_summary(user.student_id, start, min(end, today.isoformat()))
    name = user.name or 'Your child'
    if summary['totalDays'] == 0:
        return f'No attendance has been recorded for {name} this month yet.'
    attended = summary['present'] + summary['late']
    return (f"{name}'s attendance this month: {attended}/{summary['totalDays']} days "
            f"({summary['attendanceRate']}%).")


def generate_response(text, user, phone_number=None, today=None, returning=False):
    """Pick a reply for ``text`` from ``user``."""
    user_name = user.name or 'there'
    school = current_app.config.get('SCHOOL_NAME', 'Maplekids')

    link = _LINK_RE.match(text)
    if link and phone_number:
        student = link_user_to_student(phone_number, link.group(1))
        if student is None:
            return f'No student found with roll number {link.group(1)}.'
        user.student_id = student['id']
        return f"Linked to {student.get('firstName', '')} ({student['id']}). {HELP_TEXT}"

    lower = text.lower()
    if _GREETING_RE.search(lower):
        welcome = 'Welcome back' if returning else 'Welcome'
        return f'Hello {user_name}! {welcome} to {school}. How can I help you today?'
    if 'fee' in lower or 'payment' in lower:
        return (f'Hi {user_name}, for fee details and payments please contact the '
                f'{school} office. We will share your current fee status shortly.')
    if 'attendance' in lower:
        return _attendance_reply(user, today)
    return f'You said: "{text}"\n\n{HELP_TEXT}'


def process_message(message, value):
    """Handle one entry of ``value.messages`` from a webhook delivery."""
    sender = message['from']
    business_number = value.get('metadata', {}).get('phone_number_id', '')
    text = extract_text(message)
    logger.info('Message from %s: %s', sender, text)

    incoming = WhatsAppMessage(
        message_id=message['id'],
        sender=sender,
        recipient=business_number,
        text=text,
        type=message.get('type', 'text'),
        timestamp=datetime.fromtimestamp(int(message.get('timestamp', time.time())), tz=timezone.utc),
        direction='incoming',
    )
    dao.save_whatsapp_message(incoming.message_id, incoming.to_dict())

    user = get_or_create_user(sender)
    history = dao.get_conversation_history(sender)
    reply = generate_response(text, user, phone_number=sender, returning=len(history) > 1)
    send_whatsapp_message(sender, reply)

    outgoing = WhatsAppMessage(
        message_id=f'{int(time.time() * 1000)}-{sender}',
        sender=business_number,
        recipient=sender,
        text=reply,
        type='text',
        timestamp=datetime.now(timezone.utc),
        direction='outgoing',
    )
    dao.save_whatsapp_message(outgoing.message_id, outgoing.to_dict())
    dao.update_whatsapp_user(sender, {'lastMessageAt': datetime.now(timezone.utc)})
    logger.info('Processed message from %s', sender)
