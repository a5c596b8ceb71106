"""
Test suite for the Clinic Appointment Backend.
"""
import os

# Set environment for testing
os.environ["TESTING"] = "1"
