from custodia import create_app

app = create_app()
