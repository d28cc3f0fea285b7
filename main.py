"""
School Ride Booking Backend
===========================
Entry point. Run with: uvicorn main:app --reload
"""

import uvicorn

from schoolride.api.app import create_app

app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
