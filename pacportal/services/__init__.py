"""Authentication core: credential store, setup, verification, sessions, access gate"""
