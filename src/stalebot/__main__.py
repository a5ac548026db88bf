from stalebot.cli import app

app(prog_name="stalebot")
