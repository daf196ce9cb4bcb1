from zeladoria import create_app

app = create_app()

# gunicorn wsgi:app
# Set IS_SCHEDULER_WORKER=1 on exactly one process to run the daily recalculation
