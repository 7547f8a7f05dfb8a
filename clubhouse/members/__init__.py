from flask import Blueprint

bp = Blueprint('members', __name__)

from clubhouse.members import routes
