"""
WSGI entry point for the water portal.

Elastic Beanstalk and gunicorn both look for `application`:
    gunicorn application:application
"""
import os

from backend.app import app as application

if __name__ == "__main__":
    application.run(host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "5000")))
