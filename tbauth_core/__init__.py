"""
tbauth Core Package
===================
Trust layer between Thunderbolt hotplug events and durable user decisions.

Provides:
- Device model and enum token tables
- File-backed device record / key material store
- Runtime device registry and hotplug event reconciler
- Privileged sysfs authorization write
"""
