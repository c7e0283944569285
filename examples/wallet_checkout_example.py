"""
Wallet checkout walkthrough against the local simulator. A mobile app would
receive the wallet result from its Google Pay / Apple Pay plugin and hand it
to the client adapter, which forwards the token to the backend.
"""
import logging

from fastapi.testclient import TestClient

from wallet_payments import Settings, WalletPaymentClient, create_app

def run():
    logging.basicConfig(level=logging.INFO)
    settings = Settings(_env_file=None, payment_provider="simulator")
    backend = TestClient(create_app(settings=settings))
    client = WalletPaymentClient(http_client=backend)

    # Google Pay: token nested under paymentMethodData.tokenizationData
    google_pay_result = {"paymentMethodData": {"tokenizationData": {"type": "PAYMENT_GATEWAY", "token": "tok_visa"}}}
    print(client.submit_payment(google_pay_result, amount=499, description="Coffee").message)

    # Apple Pay: flat token field; this one is declined by the simulator
    print(client.submit_payment({"token": "tok_chargeDeclined"}, amount=1250).message)

    # Unknown plugin output never reaches the backend
    print(client.submit_payment({"cardInfo": {"cardNetwork": "VISA"}}, amount=499).message)

if __name__ == "__main__":
    run()
