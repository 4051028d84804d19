from app.webadmin import create_app

app = create_app()
