"""
Facility and facility category forms.
"""

from flask_wtf import FlaskForm
from wtforms import DecimalField, IntegerField, StringField
from wtforms.validators import DataRequired, Length, NumberRange, Optional


class CategoryForm(FlaskForm):
    class Meta:
        csrf = False

    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    description = StringField('Description', validators=[Optional(), Length(max=500)])


class FacilityForm(FlaskForm):
    class Meta:
        csrf = False

    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    category_id = IntegerField('Category', validators=[DataRequired()])
    # Hourly price; zero is allowed for free facilities
    price = DecimalField('Price per Hour', places=2, validators=[Optional(), NumberRange(min=0)])
    description = StringField('Description', validators=[Optional(), Length(max=500)])
