from flask import Blueprint

bp = Blueprint('slots', __name__)

from clubhouse.slots import routes
