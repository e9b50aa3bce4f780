"""
Moderation core: policy, executors, case removal, log routing and expiry.

Only ``platform`` calls the Discord API; everything else goes through the
``ModerationPlatform`` protocol so it can run against a fake in tests.
"""
