"""Change planners for enable, disable, install, uninstall and update."""
