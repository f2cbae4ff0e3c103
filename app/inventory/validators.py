"""
app/inventory/validators.py
----------------------------
Pure-Python validation for product and category payloads.
Returns a dict of field -> error_message.
An empty dict means all fields are valid.
"""

TRUTHY = ('1', 'true', 'on', 'yes', True, 1)


def _as_text(value) -> str:
    return '' if value is None else str(value).strip()


def validate_product_form(form_data: dict, partial: bool = False) -> dict:
    """
    Validate raw data for create / edit product.

    Args:
        form_data: dict of raw values from the JSON body or request.form
        partial:   True on edit: absent fields are left alone

    Returns:
        dict of {field_name: error_message} - empty if all valid.
    """
    errors = {}

    # ── name ─────────────────────────────────────────────────────
    if not partial or 'name' in form_data:
        name = _as_text(form_data.get('name'))
        if not name:
            errors['name'] = 'Product name is required.'
        elif len(name) > 200:
            errors['name'] = 'Product name must be 200 characters or fewer.'

    # ── price ─────────────────────────────────────────────────────
    if not partial or 'price' in form_data:
        price_raw = _as_text(form_data.get('price'))
        if not price_raw:
            errors['price'] = 'Price is required.'
        else:
            try:
                if int(price_raw) < 0:
                    errors['price'] = 'Price cannot be negative.'
            except ValueError:
                errors['price'] = 'Price must be a whole number of Rupiah.'

    # ── stock ─────────────────────────────────────────────────────
    if 'stock' in form_data:
        try:
            if int(_as_text(form_data.get('stock')) or '0') < 0:
                errors['stock'] = 'Stock cannot be negative.'
        except ValueError:
            errors['stock'] = 'Stock must be a whole number.'

    # ── category_id ───────────────────────────────────────────────
    cat_raw = _as_text(form_data.get('category_id'))
    if cat_raw:
        try:
            int(cat_raw)
        except ValueError:
            errors['category_id'] = 'Category must be a valid id.'

    return errors


def parse_product_form(form_data: dict, partial: bool = False) -> dict:
    """
    Convert validated raw values to model types.
    Call only after validate_product_form returns no errors.
    """
    data = {}
    if not partial or 'name' in form_data:
        data['name'] = _as_text(form_data.get('name'))
    if not partial or 'description' in form_data:
        data['description'] = _as_text(form_data.get('description')) or None
    if not partial or 'price' in form_data:
        data['price'] = int(_as_text(form_data.get('price')))
    if not partial or 'image_url' in form_data:
        data['image_url'] = _as_text(form_data.get('image_url')) or None
    if not partial or 'stock' in form_data:
        data['stock'] = int(_as_text(form_data.get('stock')) or '0')
    if not partial or 'category_id' in form_data:
        cat_raw = _as_text(form_data.get('category_id'))
        data['category_id'] = int(cat_raw) if cat_raw else None
    if not partial or 'is_available' in form_data:
        data['is_available'] = form_data.get('is_available', True) in TRUTHY
    return data


def validate_category_form(form_data: dict) -> dict:
    errors = {}
    name = _as_text(form_data.get('name'))
    if not name:
        errors['name'] = 'Category name is required.'
    elif len(name) > 120:
        errors['name'] = 'Category name must be 120 characters or fewer.'
    return errors
