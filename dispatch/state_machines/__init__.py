#Pure lifecycle transitions. No storage, no notifications.
