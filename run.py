# =============================================================================
# File: run.py
# Purpose: Entry point for development. Starts the form intake Flask app.
# =============================================================================
# run.py
from intake import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True)
