from clout import create_app, db
from clout.models import Event, Fight, Pick, User

app = create_app()


@app.shell_context_processor
def make_shell_context():
    return {
        "db": db,
        "User": User,
        "Event": Event,
        "Fight": Fight,
        "Pick": Pick,
    }


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=5000, debug=True)
