"""Outbound messages through the WhatsApp Cloud API."""

import logging

import requests as http_requests
from flask import current_app

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 4096


class WhatsAppAPIError(Exception):
    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.status_code = status_code


def _messages_url():
    cfg = current_app.config
    return f"{cfg['WHATSAPP_API_BASE_URL']}/{cfg['WHATSAPP_API_VERSION']}/{cfg['WHATSAPP_PHONE_ID']}/messages"


def _post(payload):
    token = current_app.config.get('WHATSAPP_ACCESS_TOKEN')
    if not token:
        raise WhatsAppAPIError('WHATSAPP_ACCESS_TOKEN is not configured')
    try:
        resp = http_requests.post(
            _messages_url(),
            json=payload,
            headers={
                'Authorization': f'Bearer {token}',
                'Content-Type': 'application/json',
            },
            timeout=10,
        )
    except http_requests.RequestException as e:
        raise WhatsAppAPIError(f'WhatsApp API request failed: {e}')
    if not resp.ok:
        logger.error('WhatsApp API error %s: %s', resp.status_code, resp.text)
        raise WhatsAppAPIError(f'WhatsApp API error: {resp.status_code}', resp.status_code)
    return resp.json()


def send_whatsapp_message(to, text):
    """Send a plain text message. ``to`` is the number with country code, no '+'."""
    data = _post({
        'messaging_product': 'whatsapp',
        'recipient_type': 'individual',
        'to': to,
        'type': 'text',
        'text': {'preview_url': False, 'body': text[:MAX_TEXT_LENGTH]},
    })
    logger.info('Message sent to %s', to)
    return data


def send_template_message(to, template_name, parameters, language='en'):
    """Send a pre-approved template (needed to open a conversation)."""
    data = _post({
        'messaging_product': 'whatsapp',
        'to': to,
        'type': 'template',
        'template': {
            'name': template_name,
            'language': {'code': language},
            'components': [{
                'type': 'body',
                'parameters': [{'type': 'text', 'text': str(value)} for value in parameters],
            }],
        },
    })
    logger.info('Template %s sent to %s', template_name, to)
    return data
