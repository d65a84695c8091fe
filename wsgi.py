# WSGI entry point para producción (gunicorn wsgi:app)
# La configuración se lee de las variables COSTEO_* (ver app_costeo/config.py)
import os

from app_costeo.main import create_app

app = create_app()

if __name__ == "__main__":
    app.run(host=os.environ.get('FLASK_HOST', '0.0.0.0'), port=int(os.environ.get('FLASK_PORT', 5000)))
