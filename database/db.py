from peewee import Proxy

db = Proxy()
