import sqlalchemy as sa
import sqlalchemy.orm as so
from dotenv import load_dotenv

load_dotenv('.flaskenv')

from clubhouse import create_app, db
from clubhouse.models import Member, FacilityCategory, Facility, Slot, Booking
import os

app = create_app(os.getenv('FLASK_CONFIG') or 'development')

@app.shell_context_processor
def make_shell_context():
    return {
        'sa': sa,
        'so': so,
        'db': db,
        'Member': Member,
        'FacilityCategory': FacilityCategory,
        'Facility': Facility,
        'Slot': Slot,
        'Booking': Booking,
    }

if __name__ == '__main__':
    app.run(debug=True)
