from flask import Blueprint

bp = Blueprint('facilities', __name__)

from clubhouse.facilities import routes
