from app.gymsaas import create_app

app = create_app()
