import logging

from flask_socketio import emit, join_room, leave_room

from app import socketio
from app.decorators import get_current_user
from app.firestore_models import STUDENT_CLASSES

logger = logging.getLogger(__name__)


def class_room(class_name):
    return f'class_{class_name}'


def _get_socket_user():
    """Get current user from the Flask session context in Socket.IO events."""
    user = get_current_user()
    if user and user.is_authenticated:
        return user
    return None


@socketio.on('connect')
def handle_connect():
    user = _get_socket_user()
    if user:
        emit('connected', {'user_id': user.id, 'role': user.role})


@socketio.on('join_class')
def handle_join_class(data):
    user = _get_socket_user()
    if not user:
        return
    class_name = (data or {}).get('class')
    if class_name not in STUDENT_CLASSES:
        emit('error', {'message': 'Unknown class'})
        return
    if user.is_student() and user.get('class') != class_name:
        emit('error', {'message': 'Access denied to this class'})
        return
    join_room(class_room(class_name))
    emit('joined_class', {'class': class_name})


@socketio.on('leave_class')
def handle_leave_class(data):
    class_name = (data or {}).get('class')
    if class_name:
        leave_room(class_room(class_name))


# ---------------------------------------------------------------------------
# Server-side pushes
# ---------------------------------------------------------------------------

def notify_attendance_updated(class_name, date, attendance_id):
    """Tell open dashboards of a class that its attendance changed."""
    socketio.emit('attendance_updated',
                  {'class': class_name, 'date': date, 'attendanceId': attendance_id},
                  to=class_room(class_name))
    logger.debug('attendance_updated pushed to %s', class_room(class_name))


def notify_holidays_updated():
    """Everyone re-fetches the holiday set used for attendance eligibility."""
    socketio.emit('holidays_updated', {})


def notify_announcements_updated():
    """Open dashboards re-fetch the announcements they should flash."""
    socketio.emit('announcements_updated', {})
