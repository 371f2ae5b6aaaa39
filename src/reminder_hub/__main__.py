from reminder_hub.main import run

run()
