"""
Appointment workflows and external collaborators
"""
