"""
Slot generation forms.
"""

from flask import current_app
from flask_wtf import FlaskForm
from wtforms import DateField, IntegerField, StringField, TimeField
from wtforms.validators import DataRequired, Optional, NumberRange


class SlotGenerationForm(FlaskForm):
    class Meta:
        csrf = False

    facility_id = IntegerField('Facility', validators=[DataRequired()])
    months = IntegerField('Months', validators=[DataRequired()])
    capacity = IntegerField('Capacity', validators=[DataRequired()])
    start_date = DateField('Start Date', validators=[Optional()])

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Upper bounds come from the app config
        max_months = int(current_app.config.get('SLOT_MAX_MONTHS', 12))
        max_capacity = int(current_app.config.get('SLOT_MAX_CAPACITY', 100))
        self.months.validators = [*self.months.validators, NumberRange(min=1, max=max_months)]
        self.capacity.validators = [*self.capacity.validators, NumberRange(min=1, max=max_capacity)]


class ClassSlotGenerationForm(SlotGenerationForm):
    day_of_week = StringField('Day of Week', validators=[DataRequired()])
    start_time = TimeField('Start Time', validators=[DataRequired()])
    end_time = TimeField('End Time', validators=[DataRequired()])
