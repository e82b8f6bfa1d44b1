from subscription_service.main import run

run()
