import os

from app import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # eventlet serves both HTTP and the Socket.IO push channel
    socketio.run(
        app,
        host=os.environ.get('HOST', '0.0.0.0'),
        port=int(os.environ.get('PORT', 8080)),
        debug=os.environ.get('FLASK_DEBUG', 'false').lower() in ('true', '1'),
    )
