from app.huike import create_app

app = create_app()
