"""Order status synchronization and seller settlement worker."""
