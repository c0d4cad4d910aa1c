class InstallPages:
    def index(self, args, request):
        return "install"


handler = InstallPages()
