from mimir import create_app, get_coordinator, socketio

app = create_app()

if __name__ == '__main__':
    # Use SocketIO server to enable websockets in dev
    try:
        socketio.run(app, debug=True)
    finally:
        get_coordinator(app).registry.shutdown()
