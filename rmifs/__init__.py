"""
A small distributed filesystem built on a transparent remote method invocation layer.

A central naming server owns the directory tree and knows which storage server holds
each file. Storage servers expose a local directory as remotely readable and writable
files. Every cross-process call travels through the `rmi` package: a skeleton serves an
object implementing a remote interface and stubs make calls on it look local.
"""
