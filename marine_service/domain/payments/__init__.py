"""Payments domain - Stripe payment intents and booking linkage"""
