"""
Booking forms. They validate the JSON bodies and query strings of the booking API.
"""

from flask import current_app
from flask_wtf import FlaskForm
from wtforms import DateField, DecimalField, IntegerField, SelectField, StringField, TimeField
from wtforms.validators import DataRequired, Email, Length, Optional


class FeeQueryForm(FlaskForm):
    class Meta:
        csrf = False

    facility_id = IntegerField('Facility', validators=[DataRequired()])
    booking_date = DateField('Booking Date', validators=[Optional()])
    start_time = TimeField('Start Time', validators=[DataRequired()])
    end_time = TimeField('End Time', validators=[DataRequired()])
    email = StringField('Email', validators=[Optional(), Email(), Length(max=100)])


class BookingForm(FlaskForm):
    class Meta:
        csrf = False

    facility_id = IntegerField('Facility', validators=[DataRequired()])
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    phone = StringField('Phone', validators=[DataRequired(), Length(max=15)])
    email = StringField('Email', validators=[Optional(), Email(), Length(max=100)])
    booking_date = DateField('Booking Date', validators=[DataRequired()])
    start_time = TimeField('Start Time', validators=[DataRequired()])
    end_time = TimeField('End Time', validators=[DataRequired()])
    # A zero fee is valid, so a missing fee is left to the fee check
    fee_paid = DecimalField('Fee', places=2, validators=[Optional()])
    pay_by = SelectField('Payment Method', choices=[], default='None', validators=[Optional()])

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Populate the payment methods dynamically from the app config
        self.pay_by.choices = [(method, method) for method in current_app.config.get('PAYMENT_METHODS', ['None'])]


class EditBookingForm(FlaskForm):
    class Meta:
        csrf = False

    booking_date = DateField('Booking Date', validators=[DataRequired()])
    start_time = TimeField('Start Time', validators=[DataRequired()])
    end_time = TimeField('End Time', validators=[DataRequired()])
    name = StringField('Name', validators=[Optional(), Length(max=100)])
    phone = StringField('Phone', validators=[Optional(), Length(max=15)])
    pay_by = SelectField('Payment Method', choices=[], validators=[Optional()])

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pay_by.choices = [(method, method) for method in current_app.config.get('PAYMENT_METHODS', ['None'])]


class PaymentForm(FlaskForm):
    class Meta:
        csrf = False

    pay_by = SelectField('Payment Method', choices=[], validators=[DataRequired()])

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.pay_by.choices = [(method, method) for method in current_app.config.get('PAYMENT_METHODS', [])
                               if method != 'None']
