class DictIO:
    @staticmethod
    def lower_keys(dictionary):
        return {key.lower() if isinstance(key, str) else key: value for key, value in dictionary.items()}

    @staticmethod
    def GetEssential(dictionary, *arg):
        dictionary = DictIO.lower_keys(dictionary)
        for keyword in arg:
            keyword_lower = keyword.lower() if isinstance(keyword, str) else keyword
            if keyword_lower in dictionary:
                return dictionary[keyword_lower]
        raise KeyError(f"KeyError: {arg} is not included in the data dictionary!")

    @staticmethod
    def GetAlternative(dictionary, keyword, default):
        dictionary = DictIO.lower_keys(dictionary)
        keyword_lower = keyword.lower() if isinstance(keyword, str) else keyword
        if keyword_lower in dictionary:
            return dictionary[keyword_lower]
        return default

    @staticmethod
    def GetOptional(dictionary, keyword):
        return DictIO.GetAlternative(dictionary, keyword, None)
