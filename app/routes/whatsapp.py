import logging

from flask import Blueprint, Response, request, current_app
from google.api_core.exceptions import GoogleAPICallError

from app.services.message_processor import process_message
from app.services.whatsapp_client import WhatsAppAPIError

logger = logging.getLogger(__name__)

bp = Blueprint('whatsapp', __name__, url_prefix='/whatsapp')


@bp.route('/webhook', methods=['GET'])
def verify():
    """Meta calls this once with a challenge when the webhook is registered."""
    mode = request.args.get('hub.mode')
    token = request.args.get('hub.verify_token')
    challenge = request.args.get('hub.challenge', '')
    expected = current_app.config.get('WHATSAPP_VERIFY_TOKEN')

    if mode == 'subscribe' and expected and token == expected:
        logger.info('Webhook verified')
        return Response(challenge, status=200, mimetype='text/plain')
    logger.warning('Webhook verification failed (mode=%s)', mode)
    return 'Forbidden', 403


@bp.route('/webhook', methods=['POST'])
def receive():
    body = request.get_json(silent=True) or {}
    if body.get('object') != 'whatsapp_business_account':
        return 'Not Found', 404

    try:
        for entry in body.get('entry', []):
            for change in entry.get('changes', []):
                if change.get('field') != 'messages':
                    continue
                value = change.get('value', {})
                for message in value.get('messages', []):
                    process_message(message, value)
    except (WhatsAppAPIError, GoogleAPICallError, KeyError, ValueError) as e:
        logger.exception('Webhook processing failed: %s', e)
        return 'Internal Server Error', 500
    return 'EVENT_RECEIVED', 200
