"""
Scheduler de jobs en segundo plano (APScheduler).
"""
