from flask import request, jsonify, current_app

from app.cart.session import get_cart_store, get_voucher_application
from app.checkout import checkout
from app.checkout.composer import CustomerInfo, compose_checkout
from app.errors import StorefrontError


@checkout.route('/payment-methods')
def payment_methods():
    return jsonify([{'id': key, 'name': label}
                    for key, label in current_app.config['PAYMENT_METHODS']])


@checkout.route('/', methods=['POST'])
def submit():
    """
    Compose the order message and return the WhatsApp link.
    The client opens `whatsapp_url`; the cart is already cleared.
    """
    data     = request.get_json(silent=True) or request.form
    customer = CustomerInfo.from_mapping(data)

    try:
        result = compose_checkout(
            get_cart_store(),
            get_voucher_application(),
            customer,
            store_name=current_app.config['STORE_NAME'],
            whatsapp_number=current_app.config['WHATSAPP_NUMBER'],
            payment_methods=current_app.config['PAYMENT_METHODS'],
        )
    except StorefrontError as exc:
        current_app.logger.warning(f"Checkout rejected: {exc.code} ({exc.message})")
        raise

    return jsonify(result.to_dict())
