import os

from taskcal.app import create_app
from taskcal.config import load_settings
from taskcal.logging_setup import setup_logging

basedir = os.path.abspath(os.path.dirname(__file__))
settings = load_settings(basedir)

app = create_app(settings)

if __name__ == '__main__':
    setup_logging(log_dir=settings.log_dir, console_level=settings.log_level)
    app.run(debug=settings.debug, host=settings.host, port=settings.port)
