from flask_wtf import FlaskForm
from flask_wtf.file import FileAllowed, FileField, FileRequired
from wtforms import (StringField, PasswordField, SubmitField, SelectField, TextAreaField,
                     IntegerField, DecimalField, DateField, DateTimeLocalField, BooleanField)
from wtforms.validators import DataRequired, Email, Length, NumberRange, Optional, ValidationError

from app.firestore_models import FINANCIAL_TYPES, REMARK_TYPES, STUDENT_CLASSES

CLASS_LABELS = {'play': 'Play Group', 'nursery': 'Nursery', 'lkg': 'LKG', 'ukg': 'UKG', '1st': '1st Grade'}
CLASS_CHOICES = [(c, CLASS_LABELS[c]) for c in STUDENT_CLASSES]


class LoginForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(message='Enter your email'), Email(message='Enter a valid email address')])
    password = PasswordField('Password', validators=[DataRequired(message='Enter your password')])
    submit = SubmitField('Sign in')


class ForgotPasswordForm(FlaskForm):
    email = StringField('Email', validators=[DataRequired(message='Enter your email'), Email(message='Enter a valid email address')])
    submit = SubmitField('Send reset link')


class UserCreateForm(FlaskForm):
    first_name = StringField('First name', validators=[DataRequired(), Length(max=80)])
    last_name = StringField('Last name', validators=[DataRequired(), Length(max=80)])
    email = StringField('Email', validators=[DataRequired(), Email(message='Enter a valid email address')])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=6, message='At least 6 characters')])
    phone = StringField('Phone', validators=[Optional(), Length(max=20)])
    address = StringField('Address', validators=[Optional(), Length(max=255)])
    role = SelectField('Role', choices=[('student', 'Student'), ('teacher', 'Teacher'), ('admin', 'Admin')])
    student_class = SelectField('Class', choices=[('', '-')] + CLASS_CHOICES, validators=[Optional()])
    roll_number = StringField('Roll number', validators=[Optional(), Length(max=40)])
    age = IntegerField('Age', validators=[Optional(), NumberRange(min=3, max=18)])
    parent_name = StringField('Parent name', validators=[Optional(), Length(max=120)])
    parent_phone = StringField('Parent phone', validators=[Optional(), Length(max=20)])
    submit = SubmitField('Create user')

    def user_data(self):
        data = {
            'firstName': self.first_name.data,
            'lastName': self.last_name.data,
            'phone': self.phone.data or None,
            'address': self.address.data or None,
            'role': self.role.data,
        }
        if self.role.data == 'student':
            data.update({
                'class': self.student_class.data or None,
                'rollNumber': (self.roll_number.data or '').strip() or None,
                'age': self.age.data,
                'parentName': self.parent_name.data or None,
                'parentPhone': self.parent_phone.data or None,
            })
        return data


class UserEditForm(FlaskForm):
    first_name = StringField('First name', validators=[DataRequired(), Length(max=80)])
    last_name = StringField('Last name', validators=[DataRequired(), Length(max=80)])
    phone = StringField('Phone', validators=[Optional(), Length(max=20)])
    address = StringField('Address', validators=[Optional(), Length(max=255)])
    student_class = SelectField('Class', choices=[('', '-')] + CLASS_CHOICES, validators=[Optional()])
    is_active = BooleanField('Active', default=True)
    submit = SubmitField('Save')


class BulkUploadForm(FlaskForm):
    user_type = SelectField('Create', choices=[('student', 'Students'), ('teacher', 'Teachers')])
    excel_file = FileField('Excel file', validators=[
        FileRequired(message='Choose a file'),
        FileAllowed(['xlsx'], message='Only .xlsx files can be uploaded'),
    ])
    submit = SubmitField('Upload')


class HolidayForm(FlaskForm):
    name = StringField('Holiday name', validators=[DataRequired(), Length(max=120)])
    start_date = DateField('Start date', validators=[DataRequired()])
    end_date = DateField('End date', validators=[Optional()])
    submit = SubmitField('Save holiday')

    def validate_end_date(self, field):
        if field.data and self.start_date.data and field.data < self.start_date.data:
            raise ValidationError('End date cannot be before start date.')


class EventForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    description = TextAreaField('Description', validators=[Optional()])
    date = DateField('Date', validators=[DataRequired()])
    time = StringField('Time', validators=[Optional(), Length(max=20)])
    location = StringField('Location', validators=[Optional(), Length(max=200)])
    submit = SubmitField('Save event')


class PhotoForm(FlaskForm):
    title = StringField('Title', validators=[DataRequired(), Length(max=200)])
    description = TextAreaField('Description', validators=[Optional()])
    category = StringField('Category', validators=[DataRequired(), Length(max=80)])
    image = FileField('Photo', validators=[
        FileRequired(message='Choose a photo'),
        FileAllowed(['jpg', 'jpeg', 'png', 'gif', 'webp'], message='Images only'),
    ])
    submit = SubmitField('Upload')


class RemarkForm(FlaskForm):
    student_id = StringField('Roll number', validators=[DataRequired()])
    subject = StringField('Subject', validators=[Optional(), Length(max=80)])
    remark = TextAreaField('Remark', validators=[DataRequired()])
    type = SelectField('Type', choices=[(t, t.title()) for t in REMARK_TYPES])
    date = DateField('Date', validators=[DataRequired()])
    submit = SubmitField('Save remark')


class FinancialRecordForm(FlaskForm):
    type = SelectField('Type', choices=[(t, t.title()) for t in FINANCIAL_TYPES])
    category = StringField('Category', validators=[DataRequired(), Length(max=80)])
    amount = DecimalField('Amount', places=2, validators=[DataRequired(), NumberRange(min=0.01)])
    description = TextAreaField('Description', validators=[Optional()])
    date = DateField('Date', validators=[DataRequired()])
    receipt_number = StringField('Receipt number', validators=[Optional(), Length(max=40)])
    student_name = StringField('Student name', validators=[Optional(), Length(max=120)])
    student_class = SelectField('Class', choices=[('', '-')] + CLASS_CHOICES, validators=[Optional()])
    submit = SubmitField('Save record')


class AnnouncementForm(FlaskForm):
    media = FileField('Image or video', validators=[
        FileRequired(message='Please upload an image or video'),
        FileAllowed(['jpg', 'jpeg', 'png', 'gif', 'webp', 'mp4', 'webm', 'mov'],
                    message='Please upload an image or video file'),
    ])
    start_date = DateTimeLocalField('Starts (UTC)', format='%Y-%m-%dT%H:%M', validators=[DataRequired()])
    end_date = DateTimeLocalField('Ends (UTC)', format='%Y-%m-%dT%H:%M', validators=[DataRequired()])
    display_duration = IntegerField('Show for (seconds)', default=10,
                                    validators=[DataRequired(), NumberRange(min=5, max=60)])
    is_active = BooleanField('Active', default=True)
    submit = SubmitField('Publish')

    def validate_end_date(self, field):
        if field.data and self.start_date.data and field.data <= self.start_date.data:
            raise ValidationError('End date must be after start date.')
