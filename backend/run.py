from cipherquiz import create_app, socketio
from cipherquiz.services.scheduler import start_time_sweeper

app = create_app()

if __name__ == '__main__':
    start_time_sweeper(app)
    # Use SocketIO server to enable websockets in dev
    socketio.run(app, debug=True)
