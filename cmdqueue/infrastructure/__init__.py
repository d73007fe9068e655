"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (the remote command service,
disk storage, configuration files, the console) by implementing the
interfaces defined in the domain layer.
"""
