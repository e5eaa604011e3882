"""PAC Portal backend: member and admin step-up authentication"""
