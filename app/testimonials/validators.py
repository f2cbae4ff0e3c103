"""
app/testimonials/validators.py
------------------------------
Validation for public testimonial submissions.
"""


def validate_testimonial_form(form_data: dict) -> dict:
    errors = {}

    for field, label, max_len in (('username', 'Username', 120),
                                  ('item_bought', 'Item bought', 200),
                                  ('message', 'Message', 2000)):
        value = str(form_data.get(field) or '').strip()
        if not value:
            errors[field] = f'{label} is required.'
        elif len(value) > max_len:
            errors[field] = f'{label} must be {max_len} characters or fewer.'

    try:
        rating = int(form_data.get('rating') or 0)
        if not 1 <= rating <= 5:
            errors['rating'] = 'Please select a rating from 1 to 5.'
    except (TypeError, ValueError):
        errors['rating'] = 'Rating must be a whole number.'

    return errors
