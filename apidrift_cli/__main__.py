from apidrift_cli.main import app

app(prog_name="apidrift")
