class Handler(object):
    """Container of entities keyed by global id, iterated in insertion order."""
    def __init__(self):
        self.lst = {}

    def insert(self, *args):
        if len(args) == 1:
            ptr = args[0]
            id = ptr.id()
        elif len(args) == 2:
            id, ptr = args
        else:
            raise TypeError("Handler.insert expects (ptr) or (id, ptr)")
        if id in self.lst:
            return False
        self.lst[id] = ptr
        return True

    def remove(self, id):
        return self.lst.pop(id, None) is not None

    def clear(self):
        self.lst.clear()

    def size(self):
        return len(self.lst)

    def ids(self):
        return list(self.lst.keys())

    def get(self, id, default=None):
        return self.lst.get(id, default)

    def for_each(self, function, *args, **kwargs):
        for ptr in self.lst.values():
            function(ptr, *args, **kwargs)

    def __getitem__(self, id):
        return self.lst[id]

    def __contains__(self, id):
        return id in self.lst

    def __iter__(self):
        return iter(list(self.lst.values()))

    def __len__(self):
        return len(self.lst)
